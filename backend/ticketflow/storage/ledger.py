"""Payment ledger persisted to data/ledger.yaml with atomic writes.

The whole ledger is rewritten on every commit using a tempfile -> rename
pattern. If the process crashes mid-write, the previous ledger.yaml remains
intact, so a payout batch is either fully on disk or not at all.
"""

import logging
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import yaml
from pydantic import ValidationError

from ticketflow.payments.exceptions import StoreUnavailable
from ticketflow.payments.models import (
    CreatorPaymentProfile,
    Payout,
    ReconciliationIssue,
    Transaction,
)

from .memory import InMemoryPaymentStore

logger = logging.getLogger(__name__)


class YamlPaymentStore(InMemoryPaymentStore):
    """Ledger file store. Reloads before every operation, rewrites on commit."""

    def __init__(self, ledger_path: Path) -> None:
        super().__init__()
        self.ledger_path = Path(ledger_path)

    def _load(self) -> None:
        if not self.ledger_path.exists():
            logger.debug(f"Ledger file not found: {self.ledger_path}. Starting empty.")
            self._profiles, self._transactions, self._payouts, self._issues = {}, {}, {}, {}
            return

        try:
            with open(self.ledger_path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f) or {}

            self._profiles = {
                p.creator_id: p
                for p in (CreatorPaymentProfile(**item) for item in raw_data.get("profiles", []))
            }
            self._transactions = {
                tx.id: tx
                for tx in (Transaction(**item) for item in raw_data.get("transactions", []))
            }
            self._payouts = {
                payout.id: payout
                for payout in (Payout(**item) for item in raw_data.get("payouts", []))
            }
            self._issues = {
                issue.id: issue
                for issue in (ReconciliationIssue(**item) for item in raw_data.get("issues", []))
            }
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to read ledger {self.ledger_path}: {e}")
            raise StoreUnavailable(f"Ledger unreadable: {e}") from e
        except ValidationError as e:
            logger.error(f"Corrupted record in ledger {self.ledger_path}: {e}")
            raise StoreUnavailable(f"Ledger contains invalid records: {e}") from e

    def _commit(self) -> None:
        ledger = {
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "profiles": [p.model_dump(mode="json") for p in self._profiles.values()],
            "transactions": [tx.model_dump(mode="json") for tx in self._transactions.values()],
            "payouts": [payout.model_dump(mode="json") for payout in self._payouts.values()],
            "issues": [issue.model_dump(mode="json") for issue in self._issues.values()],
        }

        # Write to temporary file in same directory (atomic rename requirement)
        temp_path: Path | None = None
        try:
            self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.ledger_path.parent,
                delete=False,
                suffix=".yaml",
                encoding="utf-8",
            ) as temp_file:
                temp_path = Path(temp_file.name)
                yaml.dump(
                    ledger,
                    temp_file,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                )

            shutil.move(str(temp_path), str(self.ledger_path))
            logger.debug(f"Saved ledger to {self.ledger_path}")

        except (OSError, yaml.YAMLError) as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to save ledger: {e}")
            raise StoreUnavailable(f"Ledger write failed: {e}") from e

    def is_available(self) -> bool:
        try:
            with self._lock:
                self._load()
            return self.ledger_path.parent.exists()
        except StoreUnavailable:
            return False
