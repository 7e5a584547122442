"""
REST API for the TeamHub club backend.
Thin wrappers around services and persistence.
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from datetime import date, datetime
from typing import Any, AsyncGenerator, Generator

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from teamhub.auth import PASSWORD_MIN_LENGTH, issue_token, token_user_id
from teamhub.models import Event, MatchResult, User
from teamhub.persistence import (
    AwardRepository,
    ClubRepository,
    PlayerRepository,
    TeamRepository,
    UserRepository,
    get_connection,
    init_db,
)
from teamhub.persistence.db import get_db_path
from teamhub.services import (
    EventService,
    EventWindow,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    OnboardingService,
    PostService,
    ResultService,
    VisibilityService,
)
from teamhub.services.onboarding import CODE_LENGTH
from teamhub.services.result_engine import GOALS_MAX, GOALS_MIN

logging.basicConfig(
    level=os.environ.get("TEAMHUB_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8081"


def _cors_origins() -> list[str]:
    raw = os.environ.get("TEAMHUB_CORS_ORIGINS", _DEFAULT_CORS_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def domain_errors() -> Generator:
    """Turn service errors into HTTP responses."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db(db_path=get_db_path())
    logger.info("Database ready at %s", get_db_path())
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="TeamHub API",
    description="Backend for clubs, teams, fixtures, results and posts",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

security = HTTPBearer(auto_error=False)

onboarding = OnboardingService()
events_svc = EventService()
results_svc = ResultService()
posts_svc = PostService()
visibility = VisibilityService()


# ---------- Request models ----------


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    name: str | None = Field(None, max_length=200)


class LoginRequest(BaseModel):
    email: str
    password: str


class RolesRequest(BaseModel):
    roles: list[str] = Field(..., min_length=1, description="Any of: coach, parent")


class JoinByCodeRequest(BaseModel):
    code: str = Field(..., min_length=CODE_LENGTH, max_length=CODE_LENGTH)


class CreateClubRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    established: str | None = Field(None, max_length=20)


class CreateTeamRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    age_group: str = Field(..., description="U7 .. U21")


class UpdateTeamRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    age_group: str | None = Field(None, description="U7 .. U21")


class CreatePlayerRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    date_of_birth: date
    team_code: str = Field(..., min_length=CODE_LENGTH, max_length=CODE_LENGTH)


class CreateEventRequest(BaseModel):
    team_id: str
    type: str = Field(..., description="match, tournament, training or social")
    location: str = Field(..., min_length=1, max_length=300)
    start_time: datetime
    end_time: datetime
    name: str | None = Field(None, max_length=200)
    friendly: bool = False
    opponent: str | None = Field(None, max_length=200)
    home_away: str | None = Field(None, description="home or away; matches only")
    additional_info: str | None = None


class UpdateEventRequest(BaseModel):
    type: str | None = None
    location: str | None = Field(None, min_length=1, max_length=300)
    start_time: datetime | None = None
    end_time: datetime | None = None
    name: str | None = Field(None, max_length=200)
    friendly: bool | None = None
    opponent: str | None = Field(None, max_length=200)
    home_away: str | None = None
    additional_info: str | None = None


class AvailabilityRequest(BaseModel):
    player_id: str
    status: str = Field(..., description="available, unavailable or pending")


class PlayerStatIn(BaseModel):
    goals: int = Field(0, ge=GOALS_MIN, le=GOALS_MAX)
    assists: int = Field(0, ge=GOALS_MIN, le=GOALS_MAX)


class SubmitResultRequest(BaseModel):
    fixture_id: str
    team_id: str
    home_team_goals: int = Field(..., ge=GOALS_MIN, le=GOALS_MAX)
    away_team_goals: int = Field(..., ge=GOALS_MIN, le=GOALS_MAX)
    player_stats: dict[str, PlayerStatIn] = Field(default_factory=dict)


class CreatePostRequest(BaseModel):
    type: str = Field(..., description="kit_request, player_request, announcement or event")
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    scope: str = Field(..., description="team or club")
    team_id: str | None = None


class UpdatePostRequest(BaseModel):
    type: str | None = None
    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)


# ---------- Auth dependency ----------


def _get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> User:
    """Load the user named by the bearer token; 401 if missing or invalid."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = token_user_id(credentials.credentials)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    with db_conn() as conn:
        user = UserRepository().get(conn, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def _result_to_dict(result: MatchResult, fixture: Event | None) -> dict[str, Any]:
    """Result enriched with fixture details for display."""
    d = result.to_dict()
    if fixture is not None:
        d["fixture"] = {
            "name": fixture.name,
            "opponent": fixture.opponent,
            "start_time": fixture.start_time.isoformat(),
            "home_away": fixture.home_away,
            "friendly": fixture.friendly,
        }
    return d


# ---------- Endpoints: health, auth, profile ----------


@app.get("/health")
def health() -> dict[str, Any]:
    return {"status": "ok"}


@app.post("/auth/register")
def register(req: RegisterRequest) -> dict[str, Any]:
    """Create account. Passwords hashed, never stored plain."""
    with db_conn() as conn, domain_errors():
        user = onboarding.register(conn, req.email, req.password, name=req.name)
        return {"user": user.to_dict(), "token": issue_token(user)}


@app.post("/auth/login")
def login(req: LoginRequest) -> dict[str, Any]:
    with db_conn() as conn:
        user = onboarding.authenticate(conn, req.email.strip().lower(), req.password)
        if user is None:
            raise HTTPException(status_code=401, detail="Invalid email or password")
        return {"user": user.to_dict(), "token": issue_token(user)}


@app.get("/me")
def get_me(user: User = Depends(_get_current_user)) -> dict[str, Any]:
    return user.to_dict()


@app.post("/me/roles")
def set_roles(req: RolesRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        return onboarding.select_roles(conn, user, req.roles).to_dict()


@app.post("/me/club")
def join_club(req: JoinByCodeRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    """Join a club by its 8-character code."""
    with db_conn() as conn, domain_errors():
        updated, club = onboarding.join_club(conn, user, req.code)
        return {"user": updated.to_dict(), "club": club.to_dict()}


@app.post("/me/teams")
def join_team(req: JoinByCodeRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    """Coach takes on an existing team of their club by its code."""
    with db_conn() as conn, domain_errors():
        updated, team = onboarding.join_team_as_coach(conn, user, req.code)
        return {"user": updated.to_dict(), "team": team.to_dict()}


# ---------- Clubs ----------


@app.post("/clubs")
def create_club(req: CreateClubRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        club, updated = onboarding.create_club(conn, user, req.name, established=req.established)
        return {"club": club.to_dict(), "user": updated.to_dict()}


@app.get("/clubs/{club_id}")
def get_club(club_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    """Members only; other clubs are reported as missing."""
    if user.club_id != club_id:
        raise HTTPException(status_code=404, detail="Club not found")
    with db_conn() as conn:
        club = ClubRepository().get(conn, club_id)
        if club is None:
            raise HTTPException(status_code=404, detail="Club not found")
        return club.to_dict()


# ---------- Teams ----------


@app.post("/teams")
def create_team(req: CreateTeamRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        team, updated = onboarding.create_team(conn, user, req.name, req.age_group)
        return {"team": team.to_dict(), "user": updated.to_dict()}


@app.get("/teams")
def list_teams(user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"teams": [t.to_dict() for t in visibility.visible_teams(conn, user)]}


def _require_visible_team(conn, user: User, team_id: str):
    team = TeamRepository().get(conn, team_id)
    if team is None or not visibility.can_view_team(conn, user, team_id):
        raise HTTPException(status_code=404, detail="Team not found")
    return team


@app.get("/teams/{team_id}")
def get_team(team_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        team = _require_visible_team(conn, user, team_id)
        d = team.to_dict()
        d["players"] = [p.to_dict() for p in PlayerRepository().list_by_team(conn, team_id)]
        return d


@app.patch("/teams/{team_id}")
def update_team(
    team_id: str, req: UpdateTeamRequest, user: User = Depends(_get_current_user)
) -> dict[str, Any]:
    """Rename a team or change its age group (managing coach only)."""
    with db_conn() as conn, domain_errors():
        team = onboarding.update_team(conn, user, team_id, name=req.name, age_group=req.age_group)
        return team.to_dict()


@app.get("/teams/{team_id}/stats")
def get_team_stats(team_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    """Season record plus per-player goal and assist totals."""
    with db_conn() as conn:
        team = _require_visible_team(conn, user, team_id)
        totals = results_svc.player_season_stats(conn, team_id)
        names = {p.id: p.name for p in PlayerRepository().list_by_team(conn, team_id)}
        return {
            "team_id": team.id,
            "wins": team.wins,
            "draws": team.draws,
            "losses": team.losses,
            "games_played": team.games_played,
            "players": [
                {"player_id": pid, "name": names.get(pid), **s.to_dict()}
                for pid, s in sorted(totals.items(), key=lambda kv: (-kv[1].goals, -kv[1].assists))
            ],
        }


@app.get("/teams/{team_id}/awards")
def get_team_awards(team_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        _require_visible_team(conn, user, team_id)
        return {"awards": [a.to_dict() for a in AwardRepository().list_by_team(conn, team_id)]}


# ---------- Players ----------


@app.post("/players")
def create_player(req: CreatePlayerRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    """Parent adds a dependent to the team with the given code."""
    with db_conn() as conn, domain_errors():
        player, team = onboarding.add_player(conn, user, req.name, req.date_of_birth, req.team_code)
        return {"player": player.to_dict(), "team": team.to_dict()}


@app.get("/players")
def list_players(user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"players": [p.to_dict() for p in onboarding.list_players(conn, user)]}


# ---------- Events ----------


@app.post("/events")
def create_event(req: CreateEventRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        event = events_svc.create_event(conn, user, **req.model_dump())
        return event.to_dict()


@app.get("/events")
def list_events(
    when: EventWindow = Query(default=EventWindow.ALL),
    user: User = Depends(_get_current_user),
) -> dict[str, Any]:
    """Visible events. when: upcoming | recent | all."""
    with db_conn() as conn:
        events = visibility.visible_events(conn, user, window=when)
        return {"events": [e.to_dict() for e in events]}


@app.get("/events/{event_id}")
def get_event(event_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        event = events_svc.get_event(conn, event_id)
        if event is None or not visibility.can_view_event(conn, user, event):
            raise HTTPException(status_code=404, detail="Event not found")
        d = event.to_dict()
        result = results_svc.get_result_for_fixture(conn, event_id)
        if result is not None:
            d["match_result"] = result.to_dict()
        return d


@app.patch("/events/{event_id}")
def update_event(
    event_id: str, req: UpdateEventRequest, user: User = Depends(_get_current_user)
) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        event = events_svc.update_event(conn, user, event_id, req.model_dump(exclude_unset=True))
        return event.to_dict()


@app.delete("/events/{event_id}")
def delete_event(event_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        events_svc.delete_event(conn, user, event_id)
        return {"deleted": event_id}


@app.put("/events/{event_id}/availability")
def set_availability(
    event_id: str, req: AvailabilityRequest, user: User = Depends(_get_current_user)
) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        event = events_svc.set_availability(conn, user, event_id, req.player_id, req.status)
        return event.to_dict()


# ---------- Match results ----------


@app.post("/match-results")
def submit_match_result(
    req: SubmitResultRequest, user: User = Depends(_get_current_user)
) -> dict[str, Any]:
    """Create or replace the fixture's result; returns it with the updated team record."""
    with db_conn() as conn, domain_errors():
        result, team = results_svc.submit_result(
            conn,
            user,
            fixture_id=req.fixture_id,
            team_id=req.team_id,
            home_team_goals=req.home_team_goals,
            away_team_goals=req.away_team_goals,
            player_stats={pid: s.model_dump() for pid, s in req.player_stats.items()},
        )
        return {
            "match_result": result.to_dict(),
            "team": {"id": team.id, "wins": team.wins, "draws": team.draws, "losses": team.losses},
        }


@app.get("/match-results")
def list_match_results(user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        results, fixtures = visibility.visible_match_results(conn, user)
        return {"match_results": [_result_to_dict(r, fixtures.get(r.fixture_id)) for r in results]}


@app.get("/match-results/fixture/{fixture_id}")
def get_match_result(fixture_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        results, fixtures = visibility.visible_match_results(conn, user)
        for r in results:
            if r.fixture_id == fixture_id:
                return _result_to_dict(r, fixtures.get(fixture_id))
        raise HTTPException(status_code=404, detail="No result for this fixture")


@app.delete("/match-results/fixture/{fixture_id}")
def delete_match_result(fixture_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        team = results_svc.delete_result(conn, user, fixture_id)
        return {"team": {"id": team.id, "wins": team.wins, "draws": team.draws, "losses": team.losses}}


# ---------- Posts ----------


@app.post("/posts")
def create_post(req: CreatePostRequest, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        post = posts_svc.create_post(
            conn, user, req.type, req.title, req.content, req.scope, team_id=req.team_id
        )
        return post.to_dict()


@app.get("/posts")
def list_posts(user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn:
        return {"posts": [p.to_dict() for p in visibility.visible_posts(conn, user)]}


@app.patch("/posts/{post_id}")
def update_post(
    post_id: str, req: UpdatePostRequest, user: User = Depends(_get_current_user)
) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        post = posts_svc.update_post(conn, user, post_id, req.model_dump(exclude_unset=True))
        return post.to_dict()


@app.delete("/posts/{post_id}")
def delete_post(post_id: str, user: User = Depends(_get_current_user)) -> dict[str, Any]:
    with db_conn() as conn, domain_errors():
        posts_svc.delete_post(conn, user, post_id)
        return {"deleted": post_id}
