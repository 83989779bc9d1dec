from ocr_gateway.api.api import api

__all__ = ["api"]
