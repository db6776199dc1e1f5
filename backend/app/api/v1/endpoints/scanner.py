"""
Scanner API Endpoints.

Staff and forwarders submit raw barcode/QR values. Unresolved and
out-of-scope scans are logged before the error is returned.
"""

from fastapi import APIRouter, Depends, Body
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.guards import require_actor_type
from backend.app.models.enums import ActorType
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import OrderResponse
from backend.app.schemas.scan import ScanRequest, ScanResponse
from backend.app.schemas.status_history import HistoryEntryResponse
from backend.app.services.scanning import ScanService

router = APIRouter(prefix="/scans", tags=["Scanner"])


@router.post("", response_model=ScanResponse)
async def submit_scan(
    scan: ScanRequest = Body(...),
    actor: Actor = Depends(require_actor_type([ActorType.STAFF, ActorType.FORWARDER])),
    db: AsyncSession = Depends(get_db)
):
    """
    Process a scan (Staff or Forwarder).

    Outcomes:
    - 200 with the new status when ``status`` was requested
    - 200 with a check-in entry when no status was requested
    - 404 ERR_SCAN_001 when nothing matched (scan logged)
    - 403 ERR_PERM_001 when the package is outside your scope (scan logged)
    - 409 ERR_TRANSITION_002 when the order changed while the scan was processed
    """
    outcome = await ScanService.process_scan(
        db=db,
        raw_value=scan.raw_value,
        actor=actor,
        location=scan.location,
        device_info=scan.device_info,
        requested_status=scan.status,
        notes=scan.notes,
    )

    return ScanResponse(
        status_changed=outcome.status_changed,
        order=OrderResponse.model_validate(outcome.order),
        history_entry=HistoryEntryResponse.model_validate(outcome.history_entry),
    )
