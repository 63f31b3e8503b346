from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parents[1] / ".env"
if _env_path.is_file():
    load_dotenv(_env_path, override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ParserSettings:
    """Parser behaviour loaded from MOLPARSE_* environment variables.

    Resource ceilings:
      MOLPARSE_CA_THRESHOLD=500000   switch to CA-only above this atom count
      MOLPARSE_MAX_ATOMS=700000      drop atoms above this count

    Parsing options:
      MOLPARSE_ALIGN_SEQRES=true     reconcile SEQRES with ATOM numbering
      MOLPARSE_PARSE_SECSTRUC=true   tag groups with HELIX/STRAND/TURN
      MOLPARSE_HEADER_ONLY=false     skip coordinates
      MOLPARSE_CA_ONLY=false         keep only CA atoms from the start

    Logging:
      MOLPARSE_LOG_LEVEL=INFO
    """

    ca_threshold: int = 500_000
    max_atoms: int = 700_000
    align_seqres: bool = True
    parse_secstruc: bool = True
    header_only: bool = False
    ca_only: bool = False
    log_level: str = "INFO"

    def with_overrides(self, **changes) -> "ParserSettings":
        """Copy with the given fields replaced; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_settings() -> ParserSettings:
    """Load settings from environment variables."""
    return ParserSettings(
        ca_threshold=int(os.environ.get("MOLPARSE_CA_THRESHOLD", "500000")),
        max_atoms=int(os.environ.get("MOLPARSE_MAX_ATOMS", "700000")),
        align_seqres=_env_bool("MOLPARSE_ALIGN_SEQRES", "true"),
        parse_secstruc=_env_bool("MOLPARSE_PARSE_SECSTRUC", "true"),
        header_only=_env_bool("MOLPARSE_HEADER_ONLY", "false"),
        ca_only=_env_bool("MOLPARSE_CA_ONLY", "false"),
        log_level=os.environ.get("MOLPARSE_LOG_LEVEL", "INFO").upper(),
    )
