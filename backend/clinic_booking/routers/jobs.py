from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic_booking.core.settings import Settings
from clinic_booking.db.session import get_db
from clinic_booking.deps import get_settings, require_admin
from clinic_booking.models.account import Account
from clinic_booking.schemas.appointment import ReconcileOut
from clinic_booking.services.audit import log_event
from clinic_booking.services.reconcile import reconcile_past_appointments

router = APIRouter(prefix="/admin/jobs", tags=["admin"])


@router.post("/reconcile-status", response_model=ReconcileOut)
def run_reconcile(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    admin: Account = Depends(require_admin),
):
    updated = reconcile_past_appointments(db, batch_size=settings.reconcile_batch_size)
    log_event(
        db,
        actor=admin,
        action="job.reconcile_status",
        entity_type="job",
        entity_id="reconcile-status",
        after_data={"updated": updated},
    )
    db.commit()
    return ReconcileOut(updated=updated)
