"""
This file is used to create a FastAPI application that will be served by a ASGI server
"""
from ocr_gateway.__main__ import main
from ocr_gateway.app import create_app

if __name__ == "__main__":
    # main() loads the engine only once the port is bound
    main()
else:
    app = create_app()
