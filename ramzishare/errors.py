"""Error taxonomy shared by the HTTP layer.

Every error carries the status code it maps to so a single exception
handler can render it.
"""


class ShareError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(ShareError):
    status_code = 400


class AuthError(ShareError):
    status_code = 401

    def __init__(self, message: str, requires_password: bool = True):
        super().__init__(message)
        self.requires_password = requires_password

    def to_dict(self):
        body = super().to_dict()
        if self.requires_password:
            body['requiresPassword'] = True
        return body


class NotFoundError(ShareError):
    status_code = 404


class StorageError(ShareError):
    # the message is what the client sees; the cause stays in the server log
    status_code = 500
