"""FastAPI dependencies: objects built once in the app lifespan."""

from fastapi import Request

from config.networks import NetworkConfig
from src.gm_common.errors import StaleSnapshotError
from src.gm_market.application.reconciler import StateSnapshotReconciler


def get_reconciler(request: Request) -> StateSnapshotReconciler:
    reconciler = getattr(request.app.state, "reconciler", None)
    if reconciler is None:
        raise StaleSnapshotError("reconciler is not running")
    return reconciler


def get_network(request: Request) -> tuple[str, NetworkConfig]:
    return request.app.state.network_id, request.app.state.network
