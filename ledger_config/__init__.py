"""
ledger_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or the ``LEDGER_CONFIG_PATH`` environment variable directly.

Architecture position:
    Configuration.  Sits above ``ledger_kernel`` and below
    ``ledger_modules``.  The kernel MUST NEVER import from
    ``ledger_config``; modules pass the values into kernel services as
    plain arguments.

Audit relevance:
    Every ``get_active_config()`` call emits a ``ledger_config_loaded`` log
    entry with the source path and checksum of the parsed file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ledger_config.loader import compute_checksum, load_yaml, parse_config
from ledger_config.schema import LedgerConfig

__all__ = ["LedgerConfig", "get_active_config", "CONFIG_PATH_ENV", "DEFAULT_CONFIG_PATH"]

_logger = logging.getLogger("ledger_kernel.config")

CONFIG_PATH_ENV = "LEDGER_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: str | Path | None = None) -> LedgerConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: explicit ``path``, then ``$LEDGER_CONFIG_PATH``, then
    the packaged ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the configuration is invalid.
    """
    if path is not None:
        source = Path(path)
    elif os.environ.get(CONFIG_PATH_ENV):
        source = Path(os.environ[CONFIG_PATH_ENV])
    else:
        source = DEFAULT_CONFIG_PATH

    data = load_yaml(source)
    config = parse_config(data)

    _logger.info(
        "ledger_config_loaded",
        extra={
            "source": str(source),
            "checksum": compute_checksum(data),
            "default_base_currency": config.default_base_currency,
            "fx_rate_mode": config.fx_rate_mode,
            "settlement_credit_basis": config.settlement_credit_basis,
        },
    )
    return config
