class NotFound(Exception):
    """Requested feed item, payment or thread does not exist."""


class NotFoundOnDisk(NotFound):
    """The record exists but its stored file is missing from the uploads directory."""


class InsufficientQuota(Exception):
    def __init__(self, required_gb: float, available_gb: float):
        self.required_gb = required_gb
        self.available_gb = available_gb
        super().__init__(f"Not enough download limit: need {required_gb:.4f} GB, have {available_gb:.4f} GB")


class InvalidOrExpired(Exception):
    """Download token failed signature, format, type, expiry or redemption checks."""


class IoFailure(Exception):
    pass


class PaymentGatewayError(Exception):
    def __init__(self, status_code, message):
        self.status_code = status_code
        super().__init__(f"[Error] {status_code}: {message}")
