from fastapi import FastAPI, UploadFile, File, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import json, logging, os, threading, uuid
from pathlib import Path

from tender_pricing.catalog import HttpCatalogClient, LocalCatalogClient
from tender_pricing.config import config
from tender_pricing.main import PricingPipeline

logger = logging.getLogger("tender_pricing.api")

app = FastAPI(title="TenderPricing")
app.add_middleware(CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["*"], allow_headers=["*"])

jobs = {}           # job_id -> {status, progress, message, filename, result_path}
cancel_events = {}  # job_id -> threading.Event
UPLOAD_DIR = Path("uploads"); UPLOAD_DIR.mkdir(exist_ok=True)
OUTPUT_DIR = Path("outputs"); OUTPUT_DIR.mkdir(exist_ok=True)

# One catalog session and one cache for the whole server. The engine is
# not thread-safe, so jobs take turns.
_engine_lock = threading.Lock()
_pipeline = None


def get_pipeline() -> PricingPipeline:
    global _pipeline
    if _pipeline is None:
        catalog_file = os.getenv("CATALOG_FILE")
        client = LocalCatalogClient.from_json(catalog_file) if catalog_file else HttpCatalogClient()
        _pipeline = PricingPipeline(client)
    return _pipeline


@app.post("/upload")
async def upload(file: UploadFile = File(...)):
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in config.supported_formats:
        raise HTTPException(400, f"Unsupported format '{suffix}'")

    job_id = str(uuid.uuid4())[:8]
    doc_path = UPLOAD_DIR / f"{job_id}{suffix}"
    content = await file.read()
    doc_path.write_bytes(content)
    jobs[job_id] = {
        "status": "queued", "progress": 0,
        "message": "Queued", "filename": file.filename,
        "job_id": job_id, "result_path": None, "summary": None,
    }
    cancel_events[job_id] = threading.Event()
    thread = threading.Thread(
        target=run_pipeline_sync,
        args=(job_id, str(doc_path)),
        daemon=True
    )
    thread.start()
    return {"job_id": job_id, "filename": file.filename}


def run_pipeline_sync(job_id: str, doc_path: str):
    # Keep our own references: DELETE may drop the job from the dicts mid-run.
    job = jobs[job_id]
    cancel = cancel_events[job_id]

    def on_progress(done: int, total: int, label: str):
        job["status"] = "running"
        job["progress"] = 5 + int(90 * done / total) if total else 95
        job["message"] = f"{done}/{total} {label}"

    try:
        job["message"] = "Waiting for catalog session..."
        with _engine_lock:
            job["status"] = "running"
            job["progress"] = 5
            job["message"] = "Reading line items..."
            output_path = str(OUTPUT_DIR / f"{job_id}.json")
            result = get_pipeline().run(
                doc_path, output_path=output_path,
                on_progress=on_progress, cancel_event=cancel,
            )

        summary = result["summary"]
        job["summary"] = summary
        job["result_path"] = output_path
        job["progress"] = 100
        if cancel.is_set():
            job["status"] = "cancelled"
            job["message"] = "Cancelled"
        else:
            job["status"] = "done"
            job["message"] = (
                f"Complete — {summary['exact'] + summary['fuzzy']}/{summary['total']} "
                f"items priced ({summary['success_rate']}%)"
            )

    except Exception as e:
        logger.exception("Job %s failed", job_id)
        job["status"] = "error"
        job["message"] = str(e)


@app.get("/jobs/{job_id}/status")
def get_status(job_id: str):
    if job_id not in jobs:
        raise HTTPException(404, "not found")
    return jobs[job_id]


@app.get("/jobs/{job_id}/result")
def get_result(job_id: str):
    job = jobs.get(job_id)
    if not job or job["status"] not in ("done", "cancelled"):
        raise HTTPException(409, "not ready")
    return json.loads(Path(job["result_path"]).read_text(encoding="utf-8"))


@app.get("/jobs")
def list_jobs():
    return list(jobs.values())


@app.delete("/jobs/{job_id}")
def delete_job(job_id: str):
    event = cancel_events.pop(job_id, None)
    if event is not None:
        event.set()
    jobs.pop(job_id, None)
    return {"deleted": job_id}


@app.post("/cache/clear")
def clear_cache():
    if not _engine_lock.acquire(blocking=False):
        return {"cleared": False, "reason": "a job is running"}
    try:
        get_pipeline().engine.clear_cache()
    finally:
        _engine_lock.release()
    return {"cleared": True}


@app.get("/health")
def health():
    cache = _pipeline.engine.cache.stats() if _pipeline is not None else None
    return {"status": "ok", "jobs": len(jobs), "cache": cache}
