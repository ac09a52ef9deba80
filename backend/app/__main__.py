"""Run the server from the repository root.

Use the ``plant-identifier`` script, or ``python -m app`` with ``backend/`` on
the path. ``plantid.settings.yaml`` and the ``public/`` directory are looked
up relative to the working directory.
"""
import uvicorn

from app.config import get_config


def main() -> None:
    server = get_config().server
    uvicorn.run("app.main:app", host=server.host, port=server.port)


if __name__ == "__main__":
    main()
