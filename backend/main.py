import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse

from auth import AuthClient, IdentityServiceError, is_allowed_role
from export import iter_csv
from models import AuthStatus, CanonicalEvent, LoginIn, Period, ReportOut, Session
from normalize import DATE_STRING_FORMAT
from repo_events import EventRepo
from service_events import AnalyticsService
from settings import settings

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Minotor Analytics Backend")

# Instantiate the repo + service here so the routes remain thin. Tests
# swap them through `app.dependency_overrides`.
repo = EventRepo()
svc = AnalyticsService(repo)
auth_client = AuthClient()

# Route functions are plain `def`: FastAPI runs them in its threadpool,
# so store reads and identity calls never block the event loop.

LOGIN_HTTP_STATUS = {
    AuthStatus.OK: 200,
    AuthStatus.INVALID_CREDENTIALS: 401,
    AuthStatus.INSUFFICIENT_ROLE: 403,
    AuthStatus.UNAVAILABLE: 503,
    AuthStatus.ENDPOINT_NOT_FOUND: 502,
    AuthStatus.SERVER_ERROR: 502,
}


def get_service() -> AnalyticsService:
    return svc


def get_auth_client() -> AuthClient:
    return auth_client


def current_session(
    authorization: Optional[str] = Header(None),
    client: AuthClient = Depends(get_auth_client),
) -> Optional[Session]:
    """Session of the caller, gated on role. None when auth is disabled."""

    if not settings.require_auth:
        return None
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        session = client.resolve_session(authorization[7:].strip())
    except IdentityServiceError as exc:
        raise HTTPException(status_code=LOGIN_HTTP_STATUS[exc.status], detail=exc.message)
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not is_allowed_role(session.role):
        raise HTTPException(
            status_code=403, detail="Droits insuffisants - Accès réservé aux commerciaux"
        )
    return session


@app.get("/health")
def health(service: AnalyticsService = Depends(get_service)):
    try:
        return {"ok": True, "collections": service.health_check()}
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"DB health check failed: {e}")


@app.post("/login")
def login(body: LoginIn, client: AuthClient = Depends(get_auth_client)):
    result = client.login(body.email, body.password)
    content = {"success": result.success, "status": result.status.value, "message": result.message}
    if result.success:
        session = client.session_for(result, body.email)
        content.update({
            "token": session.token,
            "role": session.role,
            "role_label": session.role_label,
            "full_name": session.full_name,
        })
    return JSONResponse(status_code=LOGIN_HTTP_STATUS[result.status], content=content)


@app.get("/events", response_model=List[CanonicalEvent])
def events(
    period: Period = Query(Period.ALL),
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
):
    try:
        return service.get_events_by_period(period)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Events failed: {e}")


@app.get("/stats/pages")
def page_stats(
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
) -> Dict[str, int]:
    return service.get_page_statistics()


@app.get("/stats/event-types")
def event_type_stats(
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
) -> Dict[str, int]:
    return service.get_event_type_stats()


@app.get("/stats/device-types")
def device_type_stats(
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
) -> Dict[str, int]:
    return service.get_device_type_stats()


@app.get("/report", response_model=ReportOut)
def report(
    period: Period = Query(Period.ALL),
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
):
    try:
        return service.build_report(period)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Report failed: {e}")


@app.get("/export.csv")
def export_csv(
    period: Period = Query(Period.ALL),
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
):
    events = service.get_events_by_period(period)
    filename = f"analytics_{period.value.lower()}.csv"
    return StreamingResponse(
        iter_csv(events),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


SEED_URLS = ["/home", "/login", "/dashboard", "/profile", "/settings", "/pricing"]
SEED_DEVICES = ["Desktop", "Mobile", "Tablet"]
SEED_EVENT_TYPES = ["page_view", "click", "scroll", "download"]


@app.post("/seed")
def seed(
    count: int = 50,
    days: int = 30,
    collection: Optional[str] = None,
    service: AnalyticsService = Depends(get_service),
    session: Optional[Session] = Depends(current_session),
):
    """Insert synthetic raw documents spread over the last `days` days."""

    if count < 1 or count > settings.max_read_records * 10:
        raise HTTPException(status_code=400, detail=f"count must be in 1..{settings.max_read_records * 10}")

    now = datetime.now(timezone.utc)
    docs = []
    for i in range(count):
        ts = now - timedelta(minutes=random.randint(0, days * 24 * 60))
        docs.append({
            "_id": f"seed_{int(now.timestamp())}_{i}",
            "url": random.choice(SEED_URLS),
            "date": ts.strftime(DATE_STRING_FORMAT),
            "deviceType": random.choice(SEED_DEVICES),
            "eventType": random.choice(SEED_EVENT_TYPES),
            "loadTime": random.randint(50, 3000),
            "language": random.choice(["fr-FR", "en-US", "de-DE"]),
        })

    target = collection or service.repo.candidates[0]
    try:
        inserted = service.repo.insert_documents(target, docs)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Seed failed: {e}")
    logger.info("Seeded %d documents into '%s'", inserted, target)
    return {"inserted": inserted, "collection": target}
