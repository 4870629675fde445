import pytest
import pytest_asyncio
from sqlalchemy.pool import StaticPool

from settleup.core.records import Expense
from settleup.database.session import DatabaseSessionManager

MEMBERS = ["alice", "bob", "charlie"]


@pytest.fixture
def members():
    return list(MEMBERS)


@pytest.fixture
def trip_expenses():
    """Alice pays 100, Bob 200, Charlie 300, each split three ways."""
    everyone = frozenset(MEMBERS)
    return [
        Expense(id=1, group_id=1, payer="alice", amount=10000, participants=everyone, description="Hotel"),
        Expense(id=2, group_id=1, payer="bob", amount=20000, participants=everyone, description="Food"),
        Expense(id=3, group_id=1, payer="charlie", amount=30000, participants=everyone, description="Transport"),
    ]


@pytest_asyncio.fixture
async def db():
    manager = DatabaseSessionManager()
    manager.init("sqlite+aiosqlite://", poolclass=StaticPool)
    await manager.create_all()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def session(db):
    async with db.session() as session:
        yield session
