from ocr_gateway.app.app import create_app

__all__ = ["create_app"]
