"""
Ledger data sources: the read collections the ledger is computed from, plus the one
write it performs (new payment records).

The engine never reads through a source directly. Services await everything they
need first and hand plain collections to the engine.
"""

import asyncio
import json
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Protocol
from uuid import uuid4

from fastapi import HTTPException
from pydantic import Field, ValidationError

from fee_ledger.core.config import settings
from fee_ledger.core.exceptions import LedgerSourceError
from fee_ledger.core.logger import log
from fee_ledger.core.models import (
    AcademicYear,
    FeeStructure,
    PaymentRecord,
    Pupil,
    PupilTermSnapshot,
    UniformFeeLine,
)
from fee_ledger.core.models.base import LedgerModel
from fee_ledger.core.snapshots import resolve_snapshot
from fee_ledger.core.timing import utc_now


class LedgerSource(Protocol):
    async def get_all_fee_structures(self) -> List[FeeStructure]:
        ...

    async def get_payments_for_pupil(self, pupil_id: str) -> List[PaymentRecord]:
        ...

    async def get_all_academic_years(self) -> List[AcademicYear]:
        ...

    async def get_pupil(self, pupil_id: str) -> Optional[Pupil]:
        ...

    async def get_or_create_historical_snapshot(
        self, pupil: Pupil, term_id: str, academic_year: AcademicYear
    ) -> PupilTermSnapshot:
        ...

    async def get_uniform_fees_for_pupil(
        self, pupil_id: str, term_id: str, academic_year_id: str
    ) -> List[UniformFeeLine]:
        ...

    async def get_all_uniform_fees_for_pupil(self, pupil_id: str) -> List[UniformFeeLine]:
        ...

    async def create_payment(self, payment: PaymentRecord) -> str:
        ...


class LedgerDataset(LedgerModel):
    """Everything a source serves, in the shape of an exported document store."""

    academic_years: List[AcademicYear] = Field(default_factory=list)
    fee_structures: List[FeeStructure] = Field(default_factory=list)
    pupils: List[Pupil] = Field(default_factory=list)
    payments: List[PaymentRecord] = Field(default_factory=list)
    snapshots: List[PupilTermSnapshot] = Field(default_factory=list)
    uniform_fees: Dict[str, List[UniformFeeLine]] = Field(default_factory=dict)


class InMemoryLedgerSource:
    """
    Source over a LedgerDataset held in memory. The clock decides which terms
    have ended when historical snapshots are resolved.
    """

    def __init__(self, dataset: Optional[LedgerDataset] = None, clock=utc_now) -> None:
        self.dataset = dataset or LedgerDataset()
        self.clock = clock

    async def get_all_fee_structures(self) -> List[FeeStructure]:
        return list(self.dataset.fee_structures)

    async def get_payments_for_pupil(self, pupil_id: str) -> List[PaymentRecord]:
        return [p for p in self.dataset.payments if p.pupil_id == pupil_id]

    async def get_all_academic_years(self) -> List[AcademicYear]:
        return list(self.dataset.academic_years)

    async def get_pupil(self, pupil_id: str) -> Optional[Pupil]:
        return next((p for p in self.dataset.pupils if p.id == pupil_id), None)

    async def get_or_create_historical_snapshot(
        self, pupil: Pupil, term_id: str, academic_year: AcademicYear
    ) -> PupilTermSnapshot:
        snapshot, recovered = resolve_snapshot(
            pupil, term_id, academic_year, self.dataset.snapshots, self.clock()
        )
        if recovered:
            await self.store_snapshot(snapshot)
        return snapshot

    async def store_snapshot(self, snapshot: PupilTermSnapshot) -> None:
        self.dataset.snapshots.append(snapshot)

    async def get_uniform_fees_for_pupil(
        self, pupil_id: str, term_id: str, academic_year_id: str
    ) -> List[UniformFeeLine]:
        return [
            line
            for line in self.dataset.uniform_fees.get(pupil_id, [])
            if line.term_id == term_id and line.academic_year_id == academic_year_id
        ]

    async def get_all_uniform_fees_for_pupil(self, pupil_id: str) -> List[UniformFeeLine]:
        return list(self.dataset.uniform_fees.get(pupil_id, []))

    async def create_payment(self, payment: PaymentRecord) -> str:
        if payment.id is None:
            payment = payment.model_copy(update={"id": uuid4().hex})
        self.dataset.payments.append(payment)
        return payment.id


_file_locks: Dict[Path, asyncio.Lock] = {}


def _file_lock(path: Path) -> asyncio.Lock:
    """One lock per data file, shared by every source reading it."""
    return _file_locks.setdefault(path.resolve(), asyncio.Lock())


def _read_dataset(path: Path) -> LedgerDataset:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return LedgerDataset.model_validate(raw)
    except FileNotFoundError:
        raise LedgerSourceError(f"Ledger data file not found: {path}")
    except (json.JSONDecodeError, ValidationError) as e:
        raise LedgerSourceError(f"Ledger data file {path} could not be loaded: {e}")


class JsonFileLedgerSource(InMemoryLedgerSource):
    """
    In-memory source loaded from a JSON export; writes are saved back to the file.

    Every write holds the file's lock, re-reads the file and appends to what is on
    disk, so writes from other sources over the same file are kept.
    """

    def __init__(self, path: Path, dataset: LedgerDataset, clock=utc_now) -> None:
        super().__init__(dataset, clock)
        self.path = Path(path)

    @classmethod
    def load(cls, path, clock=utc_now) -> "JsonFileLedgerSource":
        path = Path(path)
        dataset = _read_dataset(path)
        log.debug(
            "Loaded %s: %d pupils, %d fee structures, %d payments",
            path, len(dataset.pupils), len(dataset.fee_structures), len(dataset.payments),
        )
        return cls(path, dataset, clock)

    async def _reload(self) -> None:
        self.dataset = await asyncio.to_thread(_read_dataset, self.path)

    async def _write(self) -> None:
        content = self.dataset.model_dump_json(by_alias=True, indent=2)
        await asyncio.to_thread(self.path.write_text, content, encoding="utf-8")

    async def store_snapshot(self, snapshot: PupilTermSnapshot) -> None:
        async with _file_lock(self.path):
            await self._reload()
            await super().store_snapshot(snapshot)
            await self._write()

    async def create_payment(self, payment: PaymentRecord) -> str:
        async with _file_lock(self.path):
            await self._reload()
            payment_id = await super().create_payment(payment)
            await self._write()
        return payment_id


async def get_ledger_source() -> AsyncIterator[LedgerSource]:
    """Request-scoped source read from LEDGER_DATA_FILE."""
    try:
        if not settings.ledger_data_file:
            raise LedgerSourceError("LEDGER_DATA_FILE is not configured")
        source = await asyncio.to_thread(JsonFileLedgerSource.load, settings.ledger_data_file)
    except LedgerSourceError as e:
        log.error(e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    yield source
