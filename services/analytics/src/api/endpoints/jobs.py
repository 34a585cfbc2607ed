from fastapi import APIRouter, Depends, HTTPException
from src.api.dependencies import get_current_user_id, get_job_repo
from src.infrastructure.redis.jobs import JobRepository

router = APIRouter(prefix="/jobs")


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: JobRepository = Depends(get_job_repo),
):
    job = await repo.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.user_id != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return {"job": {**job.model_dump(by_alias=True), "progress": job.progress}}
