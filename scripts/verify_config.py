import os
import re
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from subscription_service.config import load_config  # noqa: E402
from subscription_service.core.exceptions import AppError  # noqa: E402
from subscription_service.database import create_db_engine, require_database  # noqa: E402


def find_setting_aliases():
    """Find all setting aliases declared in config.py."""
    content = (ROOT / "subscription_service" / "config.py").read_text(encoding="utf-8")
    return sorted(set(re.findall(r'alias="([A-Z0-9_]+)"', content)))


def verify_config():
    aliases = find_setting_aliases()
    print("=== CONFIG VERIFICATION ===")
    print(f"Settings declare {len(aliases)} variables")
    overridden = [a for a in aliases if a in os.environ]
    if overridden:
        print(f"SET IN ENVIRONMENT ({len(overridden)}):")
        for name in overridden:
            print(f"  - {name}")
    print("")

    try:
        settings = load_config()
    except AppError as exc:
        print(f"CONFIG INVALID: {exc}")
        return 1
    print(f"Server: {settings.server_host}:{settings.server_port}")
    print(f"Log level: {settings.log_level}")

    engine = create_db_engine(settings)
    try:
        require_database(engine)
    except AppError as exc:
        print(f"DATABASE UNREACHABLE: {exc}")
        return 1
    finally:
        engine.dispose()
    print(f"Database reachable ({engine.dialect.name})")
    return 0


if __name__ == "__main__":
    sys.exit(verify_config())
