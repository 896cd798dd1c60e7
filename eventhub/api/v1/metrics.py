from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter()

# Metrics Definitions
JOBS_ENQUEUED = Counter('jobs_enqueued_total', 'Total jobs enqueued', ['job_type'])
JOB_CLAIMS = Counter('job_claims_total', 'Total jobs claimed by workers', ['job_type'])
JOB_COMPLETIONS = Counter('job_completions_total', 'Total jobs completed', ['job_type'])
JOB_FAILURES = Counter('job_failures_total', 'Total job failures', ['job_type', 'type']) # type=retryable|final
JOB_CLAIM_CONFLICTS = Counter('job_claim_conflicts_total', 'Claims lost to a concurrent worker')

JOB_DURATION = Histogram('job_duration_seconds', 'Time from claim to completion', buckets=[0.5, 1.0, 5.0, 10.0, 60.0, 120.0])

QUEUE_DEPTH = Gauge('job_queue_depth', 'Number of jobs in PENDING state')
JOBS_PROCESSING = Gauge('jobs_processing', 'Number of jobs currently in PROCESSING state')

STALE_JOBS_REQUEUED = Counter(
    "stale_jobs_requeued_total",
    "Total number of stuck processing jobs reset by the maintenance reset",
    ["outcome"] # pending | failed
)

EVALUATION_ACCESS_DENIED = Counter(
    "evaluation_access_denied_total",
    "Evaluation access rejections by validation stage",
    ["stage", "reason"]
)

@router.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
