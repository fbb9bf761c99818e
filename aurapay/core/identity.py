"""身份提供方协作接口

认证由上游网关完成，这里只读取它注入的请求头。
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    email: str
    display_name: str = ""


def get_current_user(
    x_user_uid: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> Optional[AuthenticatedUser]:
    """从认证代理注入的请求头构建当前用户，未登录时返回 None"""
    if not x_user_uid and not x_user_email:
        return None
    return AuthenticatedUser(
        uid=x_user_uid or "",
        email=(x_user_email or "").strip(),
        display_name=x_user_name or "",
    )
