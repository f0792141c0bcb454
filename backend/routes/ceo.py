from fastapi import APIRouter, Depends

from database import get_db
from models.user import Principal
from utils.security import require_ceo
from utils.superuser import remove_superuser

router = APIRouter(prefix="/api/ceo", tags=["CEO"])


@router.delete("/team/{user_id}")
async def ceo_remove_superuser(
    user_id: str,
    ceo: Principal = Depends(require_ceo),
    db=Depends(get_db),
):
    previous = await remove_superuser(db, user_id, ceo)
    return {
        "success": True,
        "message": f"Superuser access removed from {previous.get('email')}",
    }
