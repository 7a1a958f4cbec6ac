import pytest

from league_portal.core.errors import StoreError
from league_portal.schemas.auth import AuthEvent
from league_portal.schemas.profile import StatLine
from league_portal.views.base import reset_on_session_change
from league_portal.views.manager import ManagerPanel

from tests.conftest import make_session, signed_in

pytestmark = pytest.mark.anyio


@pytest.fixture
async def panel(repo, resolver, provider, toasts):
    repo.add_team("t1", "Red Lions")
    repo.add_team("t2", "Blue Sharks")
    repo.add_profile("m1", "Gaffer", handle="gaffer")
    repo.add_profile("p1", "Flash", handle="flash", position="LW", goals=3, assists=1, average_rating=7.1)
    repo.add_profile("p2", "Wall", handle="wall", position="CB", goals=0, assists=2, average_rating=6.8)
    repo.add_profile("fa1", "Rookie", handle="rookie", position="ST")
    repo.add_profile("fa2", "Veteran", handle="vet", position="GK")
    repo.add_membership("p1", "t1")
    repo.add_membership("p2", "t1")
    repo.add_approval("fa1", "approved")
    repo.add_approval("fa2", "approved")
    repo.add_approval("p1", "approved")
    await repo.assign_manager("m1", "t1")

    await signed_in(resolver, provider, make_session("m1", user_name="gaffer"))
    panel = ManagerPanel(repo, resolver, toasts)
    await panel.refresh()
    toasts.drain()
    return panel


def _player(panel, pid):
    for team in panel.managed_teams:
        for p in team.players:
            if p.id == pid:
                return p
    raise AssertionError(f"{pid} not on a managed roster")


async def test_refresh_loads_managed_rosters_and_unsigned_agents(panel):
    [team] = panel.managed_teams
    assert team.id == "t1"
    assert {p.id for p in team.players} == {"p1", "p2"}
    # p1 is approved but already on a roster
    assert [fa.id for fa in panel.free_agents] == ["fa1", "fa2"]


async def test_refresh_without_identity_does_nothing(repo, resolver, toasts):
    await resolver.start()
    panel = ManagerPanel(repo, resolver, toasts)
    await panel.refresh()
    assert repo.calls["managed_teams"] == 0
    assert panel.loading is True


async def test_update_stats_changes_only_that_player(panel, toasts):
    other_before = _player(panel, "p1").model_dump()

    ok = await panel.update_stats("p2", StatLine(goals=5, assists=3, average_rating=7.2))

    assert ok is True
    p2 = _player(panel, "p2")
    assert (p2.goals, p2.assists, p2.average_rating) == (5, 3, 7.2)
    assert _player(panel, "p1").model_dump() == other_before
    assert [t.message for t in toasts.drain()] == ["Player stats updated successfully"]


async def test_edit_form_round_trip(panel):
    panel.begin_edit(_player(panel, "p1"))
    assert panel.editing_player == "p1"
    assert panel.stat_form == StatLine(goals=3, assists=1, average_rating=7.1)

    panel.stat_form = StatLine(goals=4, assists=1, average_rating=7.4)
    assert await panel.update_stats() is True

    assert _player(panel, "p1").goals == 4
    assert panel.editing_player is None and panel.stat_form is None


async def test_failed_stat_update_keeps_form_open_and_cache_identical(panel, repo, toasts):
    before = [t.model_dump() for t in panel.managed_teams]
    panel.begin_edit(_player(panel, "p2"))
    repo.fail("update_stats", StoreError("denied", status=403))

    assert await panel.update_stats() is False

    assert [t.model_dump() for t in panel.managed_teams] == before
    assert panel.editing_player == "p2"
    assert [(t.level, t.message) for t in toasts.drain()] == [("error", "Failed to update player stats")]


async def test_update_stats_without_target_is_a_no_op(panel, repo):
    assert await panel.update_stats() is False
    assert repo.calls["update_stats"] == 0


async def test_cancel_edit(panel):
    panel.begin_edit(_player(panel, "p1"))
    panel.cancel_edit()
    assert panel.editing_player is None and panel.stat_form is None


async def test_assign_player_moves_agent_onto_roster(panel, toasts):
    assert await panel.assign_player("fa1", "t1") is True

    assert {p.id for p in panel.managed_teams[0].players} == {"p1", "p2", "fa1"}
    assert [fa.id for fa in panel.free_agents] == ["fa2"]
    assert [t.message for t in toasts.drain()] == ["Player assigned to team successfully"]


async def test_assign_player_already_on_team_fails(panel, toasts):
    before = [t.model_dump() for t in panel.managed_teams]

    assert await panel.assign_player("p1", "t1") is False

    assert [t.model_dump() for t in panel.managed_teams] == before
    assert [t.message for t in toasts.drain()] == ["Failed to assign player"]


async def test_assign_player_needs_both_picks(panel, repo):
    assert await panel.assign_player(None, "t1") is False
    assert await panel.assign_player("fa1", "") is False
    assert repo.calls["add_team_membership"] == 0


async def test_open_form_is_not_applied_to_another_player(panel, repo):
    panel.begin_edit(_player(panel, "p1"))
    before = _player(panel, "p2").model_dump()

    assert await panel.update_stats("p2") is False

    assert repo.calls["update_stats"] == 0
    assert _player(panel, "p2").model_dump() == before
    assert panel.editing_player == "p1"


async def test_sign_in_as_someone_else_clears_rosters(panel, resolver, provider):
    resolver.subscribe(reset_on_session_change(panel))
    panel.begin_edit(_player(panel, "p1"))

    await provider.emit(AuthEvent.SIGNED_IN, make_session("fa1", user_name="rookie"))

    snap = panel.snapshot()
    assert resolver.current_identity().id == "fa1"
    assert snap.loading is True
    assert snap.managed_teams == [] and snap.free_agents == []
    assert snap.editing_player is None and snap.stat_form is None
