"""
Ledger driver management.

Provides one cached pyqldb QldbDriver per region/ledger pair, and a helper
for running a function inside the driver's retried transaction.

For testing, use set_driver_override() to inject a driver that will be
used instead of building real ones.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from botocore.config import Config as BotoConfig
from pyqldb.config.retry_config import RetryConfig
from pyqldb.driver.qldb_driver import QldbDriver

from ledgerstore.config import config
from ledgerstore.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class DriverOptions:
    max_concurrent_transactions: int = 10
    retry_limit: int = 4


# =============================================================================
# Driver Override (for testing)
# =============================================================================

_driver_override: Any = None


def set_driver_override(driver) -> None:
    """
    Set a driver to use instead of building real ones.

    Used by test fixtures so repository operations run against a fake
    transactional executor.

    Args:
        driver: Any object with an execute_lambda(fn) method
    """
    global _driver_override
    _driver_override = driver


def clear_driver_override() -> None:
    """Clear the driver override, restoring normal behavior."""
    global _driver_override
    _driver_override = None


# =============================================================================
# Driver Management
# =============================================================================


class DriverProvider:
    """
    Caches one QldbDriver per region/ledger key.

    Drivers are created on first request and kept until close() is called.
    """

    def __init__(self, options: DriverOptions = None):
        self.options = options or DriverOptions()
        self._drivers: dict[str, QldbDriver] = {}

    def get(
        self,
        ledger: Optional[str],
        region: Optional[str] = None,
        options: DriverOptions = None,
    ):
        """
        Get the driver for a ledger, building it on first use.

        Args:
            ledger: Name of the ledger
            region: AWS region of the ledger; defaults to the configured region
            options: Driver options, used only when the driver is first built

        Raises:
            ConfigurationError: if the ledger or region is missing
        """
        if _driver_override is not None:
            return _driver_override

        region = region or config.region
        if not ledger:
            raise ConfigurationError("A ledger name is required")
        if not region:
            raise ConfigurationError(f"No AWS region configured for ledger {ledger}")

        key = f"{region}/{ledger}"
        if key not in self._drivers:
            self._drivers[key] = self.build(ledger, region, options)
        return self._drivers[key]

    def build(self, ledger: str, region: str, options: DriverOptions = None) -> QldbDriver:
        """
        Build a new driver. Typically, use get() to share a cached one.

        The botocore connection pool is sized to the transaction limit, since
        pyqldb refuses a limit larger than the pool.
        """
        options = options or self.options
        logger.info(
            "Creating QLDB driver for %s/%s (max_concurrent_transactions=%s, retry_limit=%s)",
            region,
            ledger,
            options.max_concurrent_transactions,
            options.retry_limit,
        )
        return QldbDriver(
            ledger,
            region_name=region,
            retry_config=RetryConfig(retry_limit=options.retry_limit),
            max_concurrent_transactions=options.max_concurrent_transactions,
            config=BotoConfig(max_pool_connections=options.max_concurrent_transactions),
        )

    def close(self) -> None:
        """Close every cached driver."""
        for driver in self._drivers.values():
            driver.close()
        self._drivers.clear()


provider = DriverProvider(
    DriverOptions(
        max_concurrent_transactions=config.max_concurrent_transactions,
        retry_limit=config.retry_limit,
    )
)


def get_driver(ledger: str, region: str = None, options: DriverOptions = None):
    """Get the shared driver for a ledger from the module provider."""
    return provider.get(ledger, region, options)


def get_driver_from_env():
    """Get the shared driver for the ledger and region configured in the environment."""
    ledger, region = config.require_connection()
    return provider.get(ledger, region)


def close_all() -> None:
    provider.close()


# =============================================================================
# Transactions
# =============================================================================


def run_in_transaction(driver, fn: Callable[[Any], Any]) -> Any:
    """
    Run fn(txn) inside the driver's retried transaction.

    The driver may call fn more than once on conflicts, so fn must not have
    side effects outside the transaction.
    """
    return driver.execute_lambda(fn)
