from fastapi import APIRouter, Depends, HTTPException, Response, status

from resume_review.core.dependencies import Collaborators, get_collaborators

router = APIRouter()


@router.get("/previews/{token}")
async def get_preview(token: str, collaborators: Collaborators = Depends(get_collaborators)):
    entry = collaborators.previews.get(token)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preview not found")
    return Response(
        content=entry.content,
        media_type=entry.media_type,
        headers={"Cache-Control": "private, no-store"},
    )


@router.delete("/previews/{token}", status_code=status.HTTP_204_NO_CONTENT)
async def release_preview(token: str, collaborators: Collaborators = Depends(get_collaborators)):
    if not collaborators.previews.revoke(token):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Preview not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
