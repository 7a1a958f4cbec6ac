import asyncio

import pytest

from league_portal.core.errors import StoreError
from league_portal.schemas.auth import AuthEvent
from league_portal.views.admin import AdminPanel
from league_portal.views.base import reset_on_session_change

from tests.conftest import make_session, signed_in

pytestmark = pytest.mark.anyio


@pytest.fixture
def league(repo):
    repo.add_team("t1", "Red Lions")
    repo.add_team("t2", "Blue Sharks")
    repo.add_profile("admin", "Boss", handle="boss")
    repo.add_profile("p1", "Flash", handle="flash", position="LW")
    repo.add_profile("p2", "Wall", handle="wall", position="CB")
    repo.add_profile("u1", "Gaffer", handle="gaffer")
    repo.add_approval("p1")
    repo.add_approval("p2")
    repo.admins.add("admin")
    return repo


@pytest.fixture
async def panel(league, resolver, provider, toasts):
    await signed_in(resolver, provider, make_session("admin", user_name="boss"))
    panel = AdminPanel(league, resolver, toasts)
    await panel.refresh()
    toasts.drain()
    return panel


async def test_refresh_loads_all_slices(panel):
    assert panel.loading is False
    assert [fa.id for fa in panel.free_agents] == ["p1", "p2"]
    assert [t.name for t in panel.teams] == ["Blue Sharks", "Red Lions"]
    assert {p.id for p in panel.players} == {"admin", "p1", "p2", "u1"}
    assert panel.managers == []


async def test_approve_removes_agent_and_stays_removed(panel, league, toasts):
    assert await panel.approve("p1") is True

    assert [fa.id for fa in panel.free_agents] == ["p2"]
    assert league.approvals["p1"]["status"] == "approved"
    assert league.approvals["p1"]["approved_by"] == "admin"
    assert [t.message for t in toasts.drain()] == ["Free agent approved successfully"]

    await panel.refresh()
    assert [fa.id for fa in panel.free_agents] == ["p2"]


async def test_reject(panel, league, toasts):
    assert await panel.reject("p2") is True
    assert [fa.id for fa in panel.free_agents] == ["p1"]
    assert league.approvals["p2"]["status"] == "rejected"
    assert [t.message for t in toasts.drain()] == ["Free agent rejected successfully"]


async def test_failed_approval_leaves_list_identical(panel, league, toasts):
    before = [fa.model_dump() for fa in panel.free_agents]
    league.fail("set_free_agent_status", StoreError("denied", status=403))

    assert await panel.approve("p1") is False

    assert [fa.model_dump() for fa in panel.free_agents] == before
    assert league.approvals["p1"]["status"] == "pending"
    assert [(t.level, t.message) for t in toasts.drain()] == [("error", "Failed to update free agent status")]


async def test_assign_manager_refetches_joined_row(panel, league):
    reads = league.calls["manager_assignments"]

    assert await panel.assign_manager("u1", "t1") is True

    assert league.calls["manager_assignments"] == reads + 1
    [row] = panel.managers
    assert (row.user_id, row.team_id, row.team_name) == ("u1", "t1", "Red Lions")
    assert row.pro_clubs_name == "Gaffer"


async def test_assign_manager_needs_both_picks(panel, league, toasts):
    assert await panel.assign_manager("u1", None) is False
    assert await panel.assign_manager("", "t1") is False
    assert league.calls["assign_manager"] == 0
    assert toasts.drain() == []


async def test_second_manager_for_same_team_is_accepted(panel, league):
    await panel.assign_manager("u1", "t1")
    await panel.assign_manager("p2", "t1")
    assert [m.user_id for m in panel.managers] == ["u1", "p2"]


async def test_remove_manager_patches_list(panel, league, toasts):
    await panel.assign_manager("u1", "t1")
    toasts.drain()
    [row] = panel.managers
    reads = league.calls["manager_assignments"]

    assert await panel.remove_manager(row.id) is True

    assert panel.managers == []
    assert league.calls["manager_assignments"] == reads
    assert [t.message for t in toasts.drain()] == ["Manager removed successfully"]


async def test_remove_unknown_manager_is_idempotent(panel, league):
    assert await panel.remove_manager("ma-missing") is True
    assert panel.managers == []


async def test_patch_builds_new_list(panel):
    old = panel.free_agents
    await panel.approve("p1")
    assert panel.free_agents is not old
    assert [fa.id for fa in old] == ["p1", "p2"]


async def test_refresh_failure_keeps_previous_data(panel, league, toasts):
    before = [fa.model_dump() for fa in panel.free_agents]
    league.fail("team_options", StoreError("down", status=503))

    await panel.refresh()

    assert [fa.model_dump() for fa in panel.free_agents] == before
    assert panel.loading is False
    assert [t.message for t in toasts.drain()] == ["Failed to load admin data"]


async def test_late_response_after_unmount_is_dropped(panel, league):
    panel.unmount()
    league.add_approval("u1")
    await panel.refresh()
    assert [fa.id for fa in panel.free_agents] == ["p1", "p2"]


async def test_reset_clears_privileged_data(panel):
    panel.reset()
    snap = panel.snapshot()
    assert snap.loading is True
    assert snap.free_agents == [] and snap.managers == []


async def test_sign_out_during_refresh_keeps_panel_empty(panel, league, resolver, provider):
    resolver.subscribe(reset_on_session_change(panel))
    gate = league.gate("pending_free_agents")

    task = asyncio.create_task(panel.refresh())
    for _ in range(5):
        await asyncio.sleep(0)
    await provider.emit(AuthEvent.SIGNED_OUT, None)
    gate.set()
    await task

    snap = panel.snapshot()
    assert snap.loading is True
    assert snap.free_agents == [] and snap.managers == []
    assert panel.players == [] and panel.teams == []


async def test_patch_after_reset_is_dropped(panel, league):
    gate = league.gate("remove_manager")
    await league.assign_manager("u1", "t1")
    await panel.refresh()

    [row] = panel.managers

    task = asyncio.create_task(panel.remove_manager(row.id))
    for _ in range(5):
        await asyncio.sleep(0)
    panel.reset()
    # the next session loaded its own list before the old removal finished
    panel._commit(managers=[row])
    gate.set()
    await task

    assert panel.managers == [row]
