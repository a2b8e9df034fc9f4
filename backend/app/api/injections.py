"""Injection ledger corrections."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from pydantic import BaseModel

from ..models.base import get_db
from ..services import injection_ledger
from .patients import InjectionResponse

router = APIRouter(prefix="/injections", tags=["injections"])


class InjectionStatusUpdate(BaseModel):
    status: str
    treatment_type: Optional[str] = None
    # Operator confirmed that the remaining-dose count should follow the new status
    adjust_dose: bool = False


@router.patch("/{injection_id}", response_model=InjectionResponse)
def update_injection(
    injection_id: str,
    req: InjectionStatusUpdate,
    db: Session = Depends(get_db),
):
    """Correct an injection's status or treatment type after the fact."""
    try:
        return injection_ledger.update_injection_status(
            db,
            injection_id,
            status=req.status,
            treatment_type=req.treatment_type,
            adjust_dose=req.adjust_dose,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to update the injection status or adjust the patient dose")
