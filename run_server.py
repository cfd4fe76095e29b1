# run_server.py
import os, sys, traceback, faulthandler
from datetime import datetime
from pathlib import Path

# crash log lives next to the exe (or this file when run from source)
BASE_DIR = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
CRASH_LOG = BASE_DIR / "staff_loans_crash.log"

faulthandler.enable(open(CRASH_LOG, "a", encoding="utf-8"))


def crash_log(msg: str):
    with open(CRASH_LOG, "a", encoding="utf-8") as f:
        f.write(msg + "\n")


def main():
    try:
        import uvicorn

        from app.core import config
        from main import app

        crash_log(f"\n--- start {datetime.now().isoformat(timespec='seconds')} ---")
        crash_log(f"exe={sys.executable} cwd={os.getcwd()} base_dir={BASE_DIR}")
        crash_log(f"listening on {config.HOST}:{config.PORT}")

        uvicorn.run(app, host=config.HOST, port=config.PORT, reload=False, log_level=config.LOG_LEVEL.lower())

    except Exception:
        err = traceback.format_exc()
        crash_log(err)
        print(err, file=sys.stderr)
        raise


if __name__ == "__main__":
    main()
