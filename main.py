# main.py
from __future__ import annotations
import structlog
from app.logging_config import configure_logging
from app.controller.login_flow import LoginConfig
from ui.login_window import LoginWindow

def main() -> None:
    cfg = LoginConfig.from_env()
    configure_logging(debug=cfg.debug)
    log = structlog.get_logger()

    log.info("app.start", msg="Launching Behavioral Login Guard")
    win = LoginWindow()
    win.set_status("Ready")
    win.mainloop()
    log.info("app.stop", msg="Exited cleanly")

if __name__ == "__main__":
    main()
