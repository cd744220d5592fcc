from datetime import date, timedelta
from decimal import Decimal
from typing import AsyncGenerator, List

import pytest
from httpx import ASGITransport, AsyncClient

from fee_ledger.core.enums import FeeScope, ValidityType
from fee_ledger.core.models import AcademicYear, AssignedFee, Pupil, UniformFeeLine
from fee_ledger.core.timing import LedgerContext, fixed_clock, get_ledger_context
from fee_ledger.db.source import InMemoryLedgerSource, LedgerDataset, get_ledger_source
from fee_ledger.main import app

from factories import NOW, make_fee, make_payment, make_snapshot, make_year


@pytest.fixture()
def year_2023() -> AcademicYear:
    return make_year(2023)


@pytest.fixture()
def year_2024() -> AcademicYear:
    return make_year(2024, active=True)


@pytest.fixture()
def academic_years(year_2023, year_2024) -> List[AcademicYear]:
    return [year_2023, year_2024]


@pytest.fixture()
def pupil() -> Pupil:
    """Registered for Term 3 of 2023, in P3 then promoted to P4 for 2024."""
    return Pupil(
        id="pupil-1",
        first_name="Amina",
        last_name="Nakato",
        admission_number="TS-0001",
        class_id="P4",
        section="A",
        registration_date=date(2023, 9, 1),
        assigned_fees=[
            AssignedFee(
                fee_structure_id="sibling-discount",
                validity_type=ValidityType.CURRENT_YEAR,
                start_academic_year_id="y2024",
            ),
        ],
    )


@pytest.fixture()
def fee_structures():
    return [
        make_fee(
            "tuition-2023-t3", 300000, name="Tuition",
            academic_year_id="y2023", term_id="t3-2023",
            class_fee_type=FeeScope.SPECIFIC, class_ids=["P3"],
        ),
        make_fee(
            "tuition-2024-t1", 350000, name="Tuition",
            academic_year_id="y2024", term_id="t1-2024",
            class_fee_type=FeeScope.SPECIFIC, class_ids=["P4"],
        ),
        make_fee(
            "tuition-2024-t2", 350000, name="Tuition",
            academic_year_id="y2024", term_id="t2-2024",
            class_fee_type=FeeScope.SPECIFIC, class_ids=["P4"],
        ),
        make_fee("exam-2024-t1", 50000, name="Exam Fee", academic_year_id="y2024", term_id="t1-2024"),
        make_fee("swimming", 40000, name="Swimming", is_required=False, category="Activity"),
        make_fee(
            "sibling-discount", -50000, name="Sibling Discount",
            category="Discount", linked_fee_id="tuition-2024-t1",
        ),
    ]


@pytest.fixture()
def dataset(academic_years, year_2023, year_2024, pupil, fee_structures) -> LedgerDataset:
    """
    Outstanding for pupil-1 before Term 2 of 2024:
    tuition-2023-t3 50,000, tuition-2024-t1 100,000 (after a 50,000 discount), sweater 25,000.
    """
    return LedgerDataset(
        academic_years=academic_years,
        fee_structures=fee_structures,
        pupils=[
            pupil,
            Pupil(id="pupil-2", class_id="P2", section="B", registration_date=date(2023, 1, 15)),
        ],
        payments=[
            make_payment("tuition-2023-t3", 250000, "pay-1", at=NOW - timedelta(days=200)),
            make_payment("tuition-2024-t1", 200000, "pay-2", at=NOW - timedelta(days=100)),
            make_payment("exam-2024-t1", 50000, "pay-3", at=NOW - timedelta(days=150)),
        ],
        snapshots=[
            make_snapshot("t3-2023", year_2023, "P3"),
            make_snapshot("t1-2024", year_2024, "P4"),
        ],
        uniform_fees={
            "pupil-1": [
                UniformFeeLine(
                    id="uniform-sweater", name="Sweater", amount=Decimal("25000"),
                    balance=Decimal("25000"), term_id="t1-2024", academic_year_id="y2024",
                ),
                UniformFeeLine(
                    id="uniform-set", name="Uniform Set", amount=Decimal("80000"),
                    paid=Decimal("30000"), balance=Decimal("50000"),
                    term_id="t2-2024", academic_year_id="y2024",
                ),
            ],
        },
    )


@pytest.fixture()
def context() -> LedgerContext:
    return LedgerContext(clock=fixed_clock(NOW))


@pytest.fixture()
def source(dataset) -> InMemoryLedgerSource:
    return InMemoryLedgerSource(dataset, clock=fixed_clock(NOW))


@pytest.fixture()
async def client(source, context) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app, served from the in-memory source."""

    async def override_get_ledger_source():
        yield source

    app.dependency_overrides[get_ledger_source] = override_get_ledger_source
    app.dependency_overrides[get_ledger_context] = lambda: context
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
