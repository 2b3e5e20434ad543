"""
Run the service with uvicorn: python -m soil_alert
"""

import uvicorn

from soil_alert.config import settings


def main() -> None:
    # log_config=None keeps the JSON handlers installed by setup_logging
    uvicorn.run(
        "soil_alert.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
