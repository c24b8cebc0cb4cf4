import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from ledgerstore.errors import ConfigurationError

# Load the appropriate .env file on module import
env = os.environ.get("LEDGERSTORE_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()

DEFAULT_ID_FIELD = "documentId"


@dataclass
class Config:
    environment: str
    region: Optional[str]
    ledger: Optional[str]
    table: Optional[str]
    id_field_name: str = DEFAULT_ID_FIELD
    max_concurrent_transactions: int = 10
    retry_limit: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            environment=env,
            region=os.environ.get("AWS_REGION"),
            ledger=os.environ.get("QLDB_LEDGER"),
            table=os.environ.get("QLDB_TABLE"),
            id_field_name=os.environ.get("QLDB_ID_FIELD", DEFAULT_ID_FIELD),
            max_concurrent_transactions=int(
                os.environ.get("QLDB_MAX_CONCURRENT_TRANSACTIONS", "10")
            ),
            retry_limit=int(os.environ.get("QLDB_RETRY_LIMIT", "4")),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Config":
        """
        Build a config from host-supplied settings, falling back to the
        environment for anything the host leaves out.

        Accepts both the host's camelCase keys and the snake_case field names.
        """
        base = cls.from_env()

        def pick(*keys, default=None):
            for key in keys:
                if values.get(key) not in (None, ""):
                    return values[key]
            return default

        return cls(
            environment=base.environment,
            region=pick("region", default=base.region),
            ledger=pick("ledger", default=base.ledger),
            table=pick("table", default=base.table),
            id_field_name=pick("idFieldName", "id_field_name", default=base.id_field_name),
            max_concurrent_transactions=int(
                pick(
                    "maxConcurrentTransactions",
                    "max_concurrent_transactions",
                    default=base.max_concurrent_transactions,
                )
            ),
            retry_limit=int(pick("retryLimit", "retry_limit", default=base.retry_limit)),
            log_level=base.log_level,
        )

    def require_connection(self) -> tuple[str, str]:
        """Return (ledger, region), raising if either is not configured."""
        if not self.ledger:
            raise ConfigurationError("Ledger name is not configured (QLDB_LEDGER)")
        if not self.region:
            raise ConfigurationError("AWS region is not configured (AWS_REGION)")
        return self.ledger, self.region


def configure_logging(level: str = None) -> None:
    """Configure root logging for the CLI and the web app."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


config = Config.from_env()
