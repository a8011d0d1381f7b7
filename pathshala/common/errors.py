"""Error taxonomy shared by bindings, the session gate, uploads and controllers.

Messages are the Bengali strings shown to the user; ``code`` is a stable
machine-readable identifier for the UI.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class AppError(Exception):
    code = "error"
    default_message = "সমস্যা হয়েছে!"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None) -> None:
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


# ---- Auth --------------------------------------------------------------------

class AuthError(AppError):
    code = "auth_error"
    default_message = "লগইন করতে সমস্যা হয়েছে!"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "ইমেইল বা পাসওয়ার্ড সঠিক নয়!"


class SessionConflict(AuthError):
    code = "session_conflict"
    default_message = "এই অ্যাকাউন্ট অন্য ডিভাইসে লগইন করা আছে। প্রথমে সেখান থেকে লগআউট করুন।"


class Unauthenticated(AuthError):
    code = "unauthenticated"
    default_message = "অনুগ্রহ করে লগইন করুন।"


class Forbidden(AuthError):
    code = "forbidden"
    default_message = "এই কাজের অনুমতি নেই।"


# ---- Store -------------------------------------------------------------------

class StoreError(AppError):
    """Failure reported by the remote store.

    ``kind`` is one of ``transient``, ``permission_denied``, ``not_found`` or
    ``schema``.
    """

    code = "store_error"
    default_message = "সার্ভারের সাথে যোগাযোগে সমস্যা হয়েছে!"

    def __init__(self, message: Optional[str] = None, *, kind: str = "transient", table: Optional[str] = None) -> None:
        super().__init__(message, code=f"store_{kind}")
        self.kind = kind
        self.table = table


class NotFound(StoreError):
    default_message = "খুঁজে পাওয়া যায়নি!"

    def __init__(self, message: Optional[str] = None, *, table: Optional[str] = None) -> None:
        super().__init__(message, kind="not_found", table=table)


class SchemaError(StoreError):
    default_message = "সার্ভার থেকে ভুল তথ্য এসেছে!"

    def __init__(self, message: Optional[str] = None, *, table: Optional[str] = None) -> None:
        super().__init__(message, kind="schema", table=table)


class PartialFailure(StoreError):
    """A multi-step operation stopped part way; nothing was rolled back."""

    default_message = "কাজটি আংশিক সম্পন্ন হয়েছে। অনুগ্রহ করে অবস্থা যাচাই করুন।"

    def __init__(
        self,
        operation: str,
        completed: Sequence[str],
        remaining: Sequence[str],
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(kind="partial")
        self.code = "partial_failure"
        self.operation = operation
        self.completed: List[str] = list(completed)
        self.remaining: List[str] = list(remaining)
        self.cause = cause


# ---- Upload ------------------------------------------------------------------

UPLOAD_MESSAGES = {
    "unauthenticated": "ফাইল আপলোড করতে লগইন করুন!",
    "bucket_not_found": "স্টোরেজ বাকেট পাওয়া যায়নি!",
    "quota_exceeded": "ফাইলের আকার বা স্টোরেজ সীমা অতিক্রম করেছে!",
    "invalid_format": "শুধুমাত্র ছবি আপলোড করুন!",
    "unknown": "ফাইল আপলোড করতে সমস্যা হয়েছে",
}


class UploadError(AppError):
    code = "upload_error"

    def __init__(self, kind: str = "unknown", message: Optional[str] = None) -> None:
        if kind not in UPLOAD_MESSAGES:
            kind = "unknown"
        super().__init__(message or UPLOAD_MESSAGES[kind], code=f"upload_{kind}")
        self.kind = kind


# ---- Validation --------------------------------------------------------------

class ValidationError(AppError):
    """Client-side form validation; raised before any remote call."""

    code = "validation_error"
    default_message = "সব ফিল্ড পূরণ করুন!"

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field
