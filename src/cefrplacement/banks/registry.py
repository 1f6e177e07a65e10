"""Question bank discovery and registry."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml

from cefrplacement.engine.question_loader import BankMeta, load_bank, load_bank_meta
from cefrplacement.engine.question_pool import QuestionBank

logger = logging.getLogger(__name__)


class BankRegistry:
    """Discovers question banks in the bundled directory and any extra dirs."""

    def __init__(self, banks_dir: Path | None = None, extra_dirs: Iterable[Path] = ()):
        self.banks_dir = banks_dir or Path(__file__).parent
        self.extra_dirs = list(extra_dirs)

    def _bank_dirs(self) -> list[Path]:
        dirs = []
        for root in [self.banks_dir, *self.extra_dirs]:
            if not root.is_dir():
                continue
            dirs.extend(
                p for p in sorted(root.iterdir())
                if p.is_dir() and (p / "bank.yaml").exists()
            )
        return dirs

    def list_banks(self) -> list[BankMeta]:
        """Discover all banks with a bank.yaml. Unreadable banks are skipped."""
        banks = []
        for path in self._bank_dirs():
            try:
                banks.append(load_bank_meta(path))
            except (OSError, KeyError, TypeError, yaml.YAMLError) as e:
                logger.warning("Skipping bank at %s: %s", path, e)
        return banks

    def get_bank(self, bank_id: str) -> Optional[BankMeta]:
        for bank in self.list_banks():
            if bank.id == bank_id:
                return bank
        return None

    def load(self, bank_id: str) -> QuestionBank:
        meta = self.get_bank(bank_id)
        if meta is None:
            raise ValueError(f"Unknown question bank: {bank_id}")
        return load_bank(meta.path)
