"""Integration-test fixtures.

The app runs against a mocked chain reader: app.state is populated the way
the lifespan would, minus network resolution and the interval task.
"""

import pytest

from config.networks import DEFAULT_NETWORKS, ContractAddresses
from src.gm_market.application.reconciler import StateSnapshotReconciler
from src.main import app
from tests.factories import make_reader

LOCAL = DEFAULT_NETWORKS["local"].model_copy(update={
    "contracts": ContractAddresses(
        gdp_market="0x" + "11" * 20, usdc="0x" + "22" * 20, oracle="0x" + "33" * 20,
    ),
})


@pytest.fixture
def reader():
    return make_reader()


@pytest.fixture
async def reconciler(reader):
    rec = StateSnapshotReconciler(reader, interval_seconds=3600)
    app.state.network_id = "local"
    app.state.network = LOCAL
    app.state.reconciler = rec
    yield rec
    await rec.close()
    del app.state.reconciler
