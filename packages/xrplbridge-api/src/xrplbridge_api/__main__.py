import logging
import os

import uvicorn

from xrplbridge_api.config import get_server_config

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("BRIDGE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    config = get_server_config()

    uvicorn.run(
        "xrplbridge_api.app:create_app",
        host=config.host,
        port=config.port,
        factory=True,
    )
