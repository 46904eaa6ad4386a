"""Foundry build/deploy artifacts.

  out/<Name>.sol/<Name>.json          -> "methodIdentifiers": {"phase()": "b1c9fe6e", ...}
  broadcast/<Script>/<chain>/run-latest.json -> CREATE transactions with addresses
"""

import json
import logging
from pathlib import Path

from src.gm_common.errors import NetworkConfigError

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise NetworkConfigError(f"artifact not found: {path}") from None
    except (OSError, json.JSONDecodeError) as exc:
        raise NetworkConfigError(f"unreadable artifact {path}: {exc}") from exc


def load_method_identifiers(artifacts_dir: str | Path, contract_name: str) -> dict[str, str]:
    """Signature -> 4-byte selector (hex, no 0x) for one compiled contract."""
    path = Path(artifacts_dir) / f"{contract_name}.sol" / f"{contract_name}.json"
    identifiers = _read_json(path).get("methodIdentifiers")
    if not isinstance(identifiers, dict) or not identifiers:
        raise NetworkConfigError(f"{path} has no methodIdentifiers (rebuild with forge build)")
    return {str(sig): str(sel).lower().removeprefix("0x") for sig, sel in identifiers.items()}


def load_broadcast_addresses(broadcast_file: str | Path) -> dict[str, str]:
    """Contract name -> deployed address from a forge broadcast run file."""
    path = Path(broadcast_file)
    data = _read_json(path)
    addresses: dict[str, str] = {}
    for tx in data.get("transactions") or []:
        name = tx.get("contractName")
        address = tx.get("contractAddress")
        if tx.get("transactionType") == "CREATE" and name and address:
            addresses[name] = address
            logger.info("Deployment %s at %s (%s)", name, address, path.name)
    if not addresses:
        logger.warning("No CREATE transactions found in %s", path)
    return addresses
