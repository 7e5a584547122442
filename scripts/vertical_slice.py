#!/usr/bin/env python3
"""
Vertical slice: Club → Team → Player → Fixture → Result → Visible views.
Run from project root: python3 scripts/vertical_slice.py
"""
from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from teamhub.models import utcnow
from teamhub.persistence import get_connection, init_db
from teamhub.persistence.db import set_db_path
from teamhub.services import (
    EventService,
    EventWindow,
    OnboardingService,
    PostService,
    ResultService,
    VisibilityService,
)


def main() -> None:
    # Use data/vertical_slice.db for demo (distinct from teamhub.db)
    db_path = PROJECT_ROOT / "data" / "vertical_slice.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path)

    conn = get_connection()
    try:
        onboarding = OnboardingService()
        events = EventService()
        results = ResultService()
        posts = PostService()
        visibility = VisibilityService()

        # 1. Coach sets up club and team
        coach = onboarding.register(conn, "coach@riverside.test", "password123", name="Coach Kim")
        coach = onboarding.select_roles(conn, coach, ["coach"])
        club, coach = onboarding.create_club(conn, coach, "Riverside FC", established="1987")
        team, coach = onboarding.create_team(conn, coach, "Riverside Reds", "U10")
        print(f"Created club: {club.name} (code={club.code})")
        print(f"Created team: {team.name} (code={team.code})")

        # 2. Parent joins and registers a player
        parent = onboarding.register(conn, "parent@riverside.test", "password123", name="Pat")
        parent = onboarding.select_roles(conn, parent, ["parent"])
        parent, _ = onboarding.join_club(conn, parent, club.code)
        player, team = onboarding.add_player(conn, parent, "Sam", date(2015, 5, 1), team.code)
        print(f"Added player: {player.name} to {team.name}")

        # 3. Away fixture last weekend, result 2-2 with Sam scoring both
        kickoff = utcnow() - timedelta(days=3)
        fixture = events.create_event(
            conn, coach, team.id, "match", "Hilltop Park", kickoff, kickoff + timedelta(hours=2),
            opponent="Hilltop", home_away="away",
        )
        events.set_availability(conn, parent, fixture.id, player.id, "available")
        result, team = results.submit_result(
            conn, coach, fixture.id, team.id, 2, 2, {player.id: {"goals": 2, "assists": 0}}
        )
        print(f"Result: {result.home_team_goals}-{result.away_team_goals} ({result.result})")
        print(f"  Record: W{team.wins} D{team.draws} L{team.losses}")

        posts.create_post(conn, coach, "announcement", "Great effort", "Well played on Saturday", "team", team.id)

        # 4. What the parent sees
        recent = visibility.visible_events(conn, parent, EventWindow.RECENT)
        visible_results, _ = visibility.visible_match_results(conn, parent)
        feed = visibility.visible_posts(conn, parent)
        print(f"Parent sees {len(recent)} recent event(s), {len(visible_results)} result(s), {len(feed)} post(s)")

        print("\nVertical slice complete.")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
