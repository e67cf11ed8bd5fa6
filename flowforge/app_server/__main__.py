"""Run the app server with uvicorn: ``python -m flowforge.app_server``."""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        'flowforge.app_server.app:create_app',
        factory=True,
        host=os.getenv('FF_HOST', '127.0.0.1'),
        port=int(os.getenv('FF_PORT', '8000')),
    )


if __name__ == '__main__':
    main()
