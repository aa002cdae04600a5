"""Error taxonomy shared by the store, the session gate and the HTTP layer.

Every error carries a client-safe ``message``; the HTTP layer renders it as
``{"error": message}`` with the class's ``status_code``.
"""


class KakeiboError(Exception):
    status_code = 500
    default_message = "サーバーエラーが発生しました"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(KakeiboError):
    status_code = 400
    default_message = "必須項目が不足しているか、金額が無効です"


class AuthError(KakeiboError):
    status_code = 401
    default_message = "認証が必要です"


class NotFoundError(KakeiboError):
    status_code = 404
    default_message = "データが見つかりません"


class RateLimitError(KakeiboError):
    status_code = 429
    default_message = "リクエスト数が多すぎます。しばらく待ってから再試行してください。"

    def __init__(self, message=None, retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after


class StoreError(KakeiboError):
    status_code = 500
    default_message = "データベースエラー"


class InternalError(KakeiboError):
    status_code = 500
