from decimal import Decimal
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


class Settings(BaseSettings):
    DATABASE_URL: str = Field(default="sqlite:///./hushpay.db", description="Database connection URL")
    APP_NAME: str = "HushPay Agent"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    BASE_URL: str = Field(default="http://localhost:8000", description="Public URL used to build step-up links")

    ENCRYPTION_KEY: str = Field(default="", description="Fernet key used to encrypt wallet private keys")

    OPENAI_API_KEY: str = Field(default="", description="OpenAI API Key for the intent interpreter")
    OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="OpenAI model to use for the intent interpreter")
    OPENAI_BASE_URL: str = Field(
        default="", description="OpenAI API base URL (optional, for proxy or compatible services)"
    )
    HISTORY_WINDOW: int = Field(default=10, description="Number of recent messages sent to the interpreter")

    REDIS_HOST: str = Field(default="localhost", description="Redis host")
    REDIS_PORT: int = Field(default=6379, description="Redis port")
    REDIS_PASSWORD: str = Field(default="", description="Redis password (empty if no auth)")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_TTL: int = Field(default=3600, description="Default TTL in seconds for keyed records")

    TWILIO_ACCOUNT_SID: str = Field(default="", description="Twilio account SID")
    TWILIO_AUTH_TOKEN: str = Field(default="", description="Twilio auth token")
    TWILIO_PHONE_NUMBER: str = Field(default="", description="Twilio SMS sender number")
    TWILIO_WHATSAPP_NUMBER: str = Field(default="+14155238886", description="Twilio WhatsApp sender number")
    VERIFY_TWILIO_SIGNATURE: bool = Field(default=False, description="Validate X-Twilio-Signature on webhooks")

    RANGE_API_URL: str = Field(default="https://api.range.org/v1", description="Compliance screening API")
    RANGE_API_KEY: str = Field(default="", description="Compliance screening API key (screening skipped if empty)")
    SHADOWWIRE_API_URL: str = Field(default="https://api.radr.fun", description="Private transfer API")
    SHADOWWIRE_API_KEY: str = Field(default="", description="Private transfer API key")
    PRIVACY_POOL_API_URL: str = Field(default="https://api.privacycash.org", description="Privacy pool API")
    PRIVACY_POOL_API_KEY: str = Field(default="", description="Privacy pool API key")
    BRIDGE_API_URL: str = Field(default="https://api.silentswap.com", description="Cross-chain bridge API")
    BRIDGE_API_KEY: str = Field(default="", description="Cross-chain bridge API key")
    SOLANA_RPC_URL: str = Field(default="https://api.devnet.solana.com", description="Solana JSON-RPC endpoint")
    TOKEN_MINTS: dict[str, str] = Field(default_factory=dict, description="SPL mint address per token symbol")
    HELIUS_API_URL: str = Field(default="https://api.helius.xyz/v0", description="Balance-change notifier API")
    HELIUS_API_KEY: str = Field(default="", description="Balance-change notifier API key")
    PRICE_API_URL: str = Field(default="https://api.coingecko.com/api/v3", description="Price feed API")
    PROVIDER_TIMEOUT_SECONDS: float = Field(default=30.0, description="Timeout for provider HTTP calls")

    NATIVE_TOKEN: str = Field(default="SOL", description="Native token symbol")
    PENDING_ACTION_TTL_SECONDS: int = Field(default=300, description="Lifetime of a staged action")
    FAILED_ACTION_TTL_SECONDS: int = Field(default=86400, description="How long a failed action can be retried")
    STEP_UP_TOKEN_TTL_SECONDS: int = Field(default=300, description="Lifetime of a PIN confirmation link")
    STEP_UP_THRESHOLD: Decimal = Field(default=Decimal("0.1"), description="Amounts at or above require the PIN")
    PIN_MAX_ATTEMPTS: int = Field(default=3, description="Failed PIN attempts before the link is invalidated")
    PIN_LOCKOUT_MINUTES: int = Field(default=15, description="Lockout after too many failed PIN attempts")
    MIN_TRANSFER_AMOUNT: Decimal = Field(default=Decimal("0.001"), description="Smallest amount accepted")
    NETWORK_FEE_ESTIMATE: Decimal = Field(default=Decimal("0.000005"), description="Fee estimate in native units")
    RATE_LIMIT_MAX_REQUESTS: int = Field(default=10, description="Requests allowed per window and identity")
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default=60, description="Rate limit window in seconds")
    SCHEDULER_INTERVAL_SECONDS: int = Field(default=300, description="Recurring payment and alert tick")

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


settings = Settings()

# Database
_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

Base = declarative_base()


def get_engine() -> Engine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
        _engine = create_engine(
            settings.DATABASE_URL, pool_pre_ping=True, echo=settings.DEBUG, connect_args=connect_args
        )
    return _engine


def set_engine(engine: Engine) -> None:
    global _engine, _SessionFactory  # noqa: PLW0603
    _engine = engine
    _SessionFactory = None


def get_session() -> Session:
    global _SessionFactory  # noqa: PLW0603
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _SessionFactory()


def get_db():
    db = get_session()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        import logging
        logger = logging.getLogger("uvicorn.error")
        logger.error(f"Error in get_db: {str(e)}", exc_info=True)
        raise
    finally:
        db.close()
