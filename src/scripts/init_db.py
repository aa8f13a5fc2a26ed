"""
Create all tables without running migrations (local SQLite development).
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.configuration.config import Base, get_engine, settings  # noqa: E402
from src.modules.alerts.entities import PriceAlert  # noqa: E402, F401
from src.modules.conversations.entities import Message  # noqa: E402, F401
from src.modules.identities.entities import Contact, User  # noqa: E402, F401
from src.modules.recurring.entities import RecurringPayment  # noqa: E402, F401
from src.modules.transfers.entities import Transfer  # noqa: E402, F401


def init_database():
    engine = get_engine()

    print(f"Creating tables in {engine.url.render_as_string(hide_password=True)}...")
    Base.metadata.create_all(bind=engine)
    print(f"{len(Base.metadata.tables)} tables created/verified for {settings.APP_NAME}")


if __name__ == "__main__":
    init_database()
