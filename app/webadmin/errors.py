"""
API error types and the predefined error table.

Every error leaving the API is rendered from an ``APIError`` so clients always
see the same JSON shape (the error handlers live in ``create_app``).
"""
from __future__ import annotations

from typing import Any

# Bilingual messages keyed like API_ERRORS (plus a few success keys).
MESSAGES: dict[str, dict[str, str]] = {
    "INVALID_CREDENTIALS": {"th": "อีเมลหรือรหัสผ่านไม่ถูกต้อง", "en": "Invalid email or password"},
    "UNAUTHORIZED": {"th": "จำเป็นต้องเข้าสู่ระบบ", "en": "Authentication required"},
    "FORBIDDEN": {"th": "การเข้าถึงถูกปฏิเสธ ไม่มีสิทธิ์เพียงพอ", "en": "Access denied. Insufficient permissions"},
    "TOKEN_EXPIRED": {"th": "โทเค็นการยืนยันตัวตนหมดอายุแล้ว", "en": "Authentication token has expired"},
    "ACCOUNT_DEACTIVATED": {"th": "บัญชีถูกปิดการใช้งาน", "en": "Account has been deactivated"},
    "VALIDATION_ERROR": {"th": "การตรวจสอบข้อมูลล้มเหลว", "en": "Validation failed"},
    "MISSING_REQUIRED_FIELDS": {"th": "ข้อมูลจำเป็นขาดหายไป", "en": "Required fields are missing"},
    "INVALID_INPUT": {"th": "ข้อมูลที่ป้อนไม่ถูกต้อง", "en": "Invalid input provided"},
    "NOT_FOUND": {"th": "ไม่พบข้อมูลที่ร้องขอ", "en": "Resource not found"},
    "ALREADY_EXISTS": {"th": "ข้อมูลมีอยู่แล้ว", "en": "Resource already exists"},
    "DATA_USED": {"th": "ข้อมูลถูกใช้งาน", "en": "Data is used"},
    "TOO_MANY_REQUESTS": {"th": "มีการร้องขอมากเกินไป", "en": "Too many requests"},
    "INTERNAL_ERROR": {"th": "เกิดข้อผิดพลาดภายในเซิร์ฟเวอร์", "en": "Internal server error"},
    "DATABASE_ERROR": {"th": "การดำเนินการฐานข้อมูลล้มเหลว", "en": "Database operation failed"},
    "USER_NOT_FOUND": {"th": "ไม่พบผู้ใช้งาน", "en": "User not found"},
    "USER_ALREADY_EXISTS": {"th": "ผู้ใช้งานมีอยู่แล้ว", "en": "User already exists"},
    "INVALID_USER_ID": {"th": "รหัสผู้ใช้งานไม่ถูกต้อง", "en": "Invalid user ID"},
    "ROLE_NOT_FOUND": {"th": "ไม่พบบทบาท", "en": "Role not found"},
    "ROLE_ALREADY_EXISTS": {"th": "บทบาทมีอยู่แล้ว", "en": "Role already exists"},
    "INVALID_ROLE_ID": {"th": "รหัสบทบาทไม่ถูกต้อง", "en": "Invalid role ID"},
    "ROLE_IN_USE": {"th": "บทบาทนี้กำลังถูกใช้งาน ไม่สามารถลบได้", "en": "Role is currently in use and cannot be deleted"},
    "PERMISSION_NOT_FOUND": {"th": "ไม่พบสิทธิ์การใช้งาน", "en": "Permission not found"},
    "PERMISSION_ALREADY_EXISTS": {"th": "สิทธิ์การใช้งานมีอยู่แล้ว", "en": "Permission already exists"},
    "INVALID_PERMISSION_ID": {"th": "รหัสสิทธิ์การใช้งานไม่ถูกต้อง", "en": "Invalid permission ID"},
    "PERMISSION_IN_USE": {
        "th": "สิทธิ์การใช้งานนี้กำลังถูกใช้งาน ไม่สามารถลบได้",
        "en": "Permission is currently in use and cannot be deleted",
    },
    # success keys
    "SUCCESS": {"th": "สำเร็จ", "en": "successful"},
    "LOGIN_SUCCESS": {"th": "เข้าสู่ระบบสำเร็จ", "en": "Login successful"},
    "LOGOUT_SUCCESS": {"th": "ออกจากระบบสำเร็จ", "en": "Logout successful"},
    "REGISTER_SUCCESS": {"th": "ลงทะเบียนสำเร็จ", "en": "Registration successful"},
    "CREATE_SUCCESS": {"th": "สร้างข้อมูลสำเร็จ", "en": "Create successful"},
    "UPDATE_SUCCESS": {"th": "อัพเดทข้อมูลสำเร็จ", "en": "Update successful"},
    "DELETE_SUCCESS": {"th": "ลบข้อมูลสำเร็จ", "en": "Delete successful"},
}

API_ERRORS: dict[str, tuple[int, str]] = {
    # auth
    "INVALID_CREDENTIALS": (401, "Invalid email or password"),
    "UNAUTHORIZED": (401, "Authentication required"),
    "FORBIDDEN": (403, "Access denied. Insufficient permissions"),
    "TOKEN_EXPIRED": (401, "Authentication token has expired"),
    "ACCOUNT_DEACTIVATED": (401, "Account has been deactivated"),
    # validation
    "VALIDATION_ERROR": (400, "Validation failed"),
    "MISSING_REQUIRED_FIELDS": (400, "Required fields are missing"),
    "INVALID_INPUT": (400, "Invalid input provided"),
    # resources
    "NOT_FOUND": (404, "Resource not found"),
    "ALREADY_EXISTS": (409, "Resource already exists"),
    "DATA_USED": (409, "Resource is used"),
    "TOO_MANY_REQUESTS": (429, "Too many requests"),
    # server
    "INTERNAL_ERROR": (500, "Internal server error"),
    "DATABASE_ERROR": (500, "Database operation failed"),
    # users
    "USER_NOT_FOUND": (404, "User not found"),
    "USER_ALREADY_EXISTS": (409, "User already exists"),
    "INVALID_USER_ID": (400, "Invalid user ID"),
    # roles
    "ROLE_NOT_FOUND": (404, "Role not found"),
    "ROLE_ALREADY_EXISTS": (409, "Role already exists"),
    "INVALID_ROLE_ID": (400, "Invalid role ID"),
    "ROLE_IN_USE": (400, "Role is currently in use and cannot be deleted"),
    # permissions
    "PERMISSION_NOT_FOUND": (404, "Permission not found"),
    "PERMISSION_ALREADY_EXISTS": (409, "Permission already exists"),
    "INVALID_PERMISSION_ID": (400, "Invalid permission ID"),
    "PERMISSION_IN_USE": (400, "Permission is currently in use and cannot be deleted"),
}

_STATUS_TO_KEY = {
    400: "INVALID_INPUT",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "ALREADY_EXISTS",
    429: "TOO_MANY_REQUESTS",
}


class APIError(Exception):
    def __init__(self, status_code: int, status_message: str, data: dict[str, Any] | None = None):
        super().__init__(status_message)
        self.status_code = status_code
        self.status_message = status_message
        self.data = data or {}
        self.key: str | None = None

    def to_dict(self, url: str | None = None) -> dict[str, Any]:
        return {
            "error": True,
            "url": url,
            "statusCode": self.status_code,
            "statusMessage": self.status_message,
            "message": self.status_message,
            "data": self.data or None,
        }


def get_messages(key: str) -> dict[str, str]:
    return MESSAGES.get(key) or {"en": "Unknown message", "th": "ข้อความไม่ทราบ"}


def predefined_error(key: str, **data: Any) -> APIError:
    """Build an APIError from the API_ERRORS table; extra kwargs land in ``data``."""
    status_code, status_message = API_ERRORS[key]
    err = APIError(status_code, status_message, {"messages": get_messages(key), **data})
    err.key = key
    return err


def validation_error(fields: dict[str, str] | str) -> APIError:
    if isinstance(fields, str):
        return predefined_error("VALIDATION_ERROR", details=[fields])
    return predefined_error("VALIDATION_ERROR", errors=fields)


def error_for_status(status_code: int, description: str | None = None) -> APIError:
    """Map a bare HTTP status (werkzeug HTTPException) onto the predefined table."""
    key = _STATUS_TO_KEY.get(status_code)
    if key is None:
        return APIError(status_code, description or "Request failed")
    err = predefined_error(key)
    if description:
        err.data["details"] = [description]
    return err
