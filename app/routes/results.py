"""Read access to stored analysis results."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.models.database import get_db
from app.models.result import ResultSet
from app.schemas.results import ResultHighlightsSchema, ResultSetSchema
from app.services.analysis.highlights import build_highlights
from app.services.closure.stores import ResultStore

router = APIRouter(prefix="/api")


def _latest_or_404(db: Session, lecture_id: int) -> ResultSet:
    result_set = ResultStore(db).latest_for_lecture(lecture_id)
    if result_set is None:
        raise HTTPException(status_code=404, detail=f"No results for lecture {lecture_id}")
    return result_set


@router.get("/lectures/{lecture_id}/results/latest", response_model=ResultSetSchema)
def get_latest_results(lecture_id: int, db: Session = Depends(get_db)) -> ResultSetSchema:
    """Newest result set for a lecture, with all of its facts.

    Raises:
        HTTPException: 404 if the lecture has no results yet
    """
    return ResultSetSchema.model_validate(_latest_or_404(db, lecture_id))


@router.get(
    "/lectures/{lecture_id}/results/latest/highlights",
    response_model=ResultHighlightsSchema,
)
def get_latest_highlights(
    lecture_id: int,
    top: int = Query(3, ge=1, le=20, description="Top options per dimension"),
    threshold_pct: float = Query(5.0, ge=0, le=100, alias="thresholdPct"),
    db: Session = Depends(get_db),
) -> ResultHighlightsSchema:
    """Top options, cross table shape and group comparisons of the newest result set.

    Raises:
        HTTPException: 404 if the lecture has no results yet
    """
    highlights = build_highlights(
        _latest_or_404(db, lecture_id), top_limit=top, threshold_pct=threshold_pct
    )
    return ResultHighlightsSchema.model_validate(highlights)
