from fastapi import APIRouter, Depends

from resume_review.core.dependencies import Collaborators, get_collaborators

router = APIRouter()


@router.get("/health", summary="Health Check", description="Service liveness and PDF renderer warm-up state.")
async def health_check(collaborators: Collaborators = Depends(get_collaborators)):
    return {
        "status": "healthy",
        "renderer": "ready" if collaborators.render_engine.loaded else "cold",
    }
