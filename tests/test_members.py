# tests/test_members.py

from __future__ import annotations

import asyncio

import pytest

from teamtask.core.errors import RequestRejected, StateInvariantViolation, ValidationFailure
from teamtask.core.models import Role

from .fakes import USER, member_row, ok, team_row

MEMBERS = [
    member_row("m1", "u1", "owner"),
    member_row("m2", "u2", "member"),
    member_row("m3", "u3", "admin"),
]


async def _scoped(session, teams, api, *, role: str = "owner", members=None) -> None:
    """Log in as USER (u1), load teams and select T1 with its members loaded."""
    api.respond("POST", "/auth/login", ok(user=USER))
    api.respond("GET", "/teams", ok(teams=[team_row("T1", role), team_row("T2", "member")]))
    api.respond("GET", "/teams/T1/members", ok(members=MEMBERS if members is None else members))
    await session.login({"email": "a@b.com", "password": "Abcd1234"})
    await teams.load()
    teams.select("T1")
    await teams.members.load_members()


@pytest.mark.asyncio
async def test_select_and_load_members(session, teams, api) -> None:
    await _scoped(session, teams, api)
    store = teams.members
    assert teams.selected_team is not None and teams.selected_team.id == "T1"
    assert [m.id for m in store.items] == ["m1", "m2", "m3"]
    assert store.is_self(store.get("m1"))
    assert store.items[2].role is Role.ADMIN


@pytest.mark.asyncio
async def test_role_controls_follow_acting_role(session, teams, api) -> None:
    await _scoped(session, teams, api)
    store = teams.members
    assert [store.can_edit_role(m) for m in store.items] == [False, True, True]
    plain = store.get("m2")

    teams.select(None)
    assert store.items == []
    assert not store.can_edit_role(plain)


@pytest.mark.asyncio
async def test_select_none_clears_members_immediately(session, teams, api) -> None:
    await _scoped(session, teams, api)
    teams.select(None)
    assert teams.selected_team is None
    assert teams.members.items == []


def test_select_unknown_team_id_rejected(teams) -> None:
    with pytest.raises(ValidationFailure):
        teams.select("nope")


@pytest.mark.asyncio
async def test_response_for_previous_scope_is_discarded(session, teams, api) -> None:
    await _scoped(session, teams, api)
    pending = asyncio.get_running_loop().create_future()
    api.respond("GET", "/teams/T1/members", pending)

    teams.select(None)
    teams.select("T1")
    load_x = asyncio.create_task(teams.members.load_members("T1"))
    await asyncio.sleep(0)

    teams.select("T2")
    pending.set_result(ok(members=[member_row("mX", "uX")]))
    await load_x

    assert teams.selected_team.id == "T2"
    assert teams.members.items == []


@pytest.mark.asyncio
async def test_superseded_member_load_is_discarded(session, teams, api) -> None:
    await _scoped(session, teams, api)
    loop = asyncio.get_running_loop()
    first, second = loop.create_future(), loop.create_future()
    api.respond("GET", "/teams/T1/members", first, second)

    a = asyncio.create_task(teams.members.load_members())
    b = asyncio.create_task(teams.members.load_members())
    await asyncio.sleep(0)
    second.set_result(ok(members=[member_row("m2", "u2")]))
    await b
    first.set_result(ok(members=MEMBERS))
    await a

    assert [m.id for m in teams.members.items] == ["m2"]


@pytest.mark.asyncio
async def test_owner_changes_member_role(session, teams, api) -> None:
    await _scoped(session, teams, api)
    api.respond("PUT", "/teams/T1/members/m2", ok())
    loads = api.count("GET", "/teams/T1/members")

    await teams.members.update_role("m2", "admin")

    assert api.last("PUT", "/teams/T1/members/m2").body == {"role": "admin"}
    assert api.count("GET", "/teams/T1/members") == loads + 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("team_role", "members", "target", "new_role", "message"),
    [
        ("admin", None, "m2", "admin", "Only the team owner"),
        ("owner", None, "m1", "admin", "your own role"),
        (
            "owner",
            [member_row("m1", "u1", "admin"), member_row("m4", "u4", "owner")],
            "m4",
            "admin",
            "owner's role cannot be changed",
        ),
        ("owner", None, "m2", "owner", "Ownership transfer"),
    ],
)
async def test_role_change_rejected_locally(session, teams, api, team_role, members, target, new_role, message) -> None:
    await _scoped(session, teams, api, role=team_role, members=members)
    before = [m.role for m in teams.members.items]

    with pytest.raises(StateInvariantViolation, match=message):
        await teams.members.update_role(target, new_role)

    assert api.count("PUT", f"/teams/T1/members/{target}") == 0
    assert [m.role for m in teams.members.items] == before
    assert teams.members.error is not None


@pytest.mark.asyncio
async def test_role_change_input_validation(session, teams, api) -> None:
    await _scoped(session, teams, api)
    with pytest.raises(ValidationFailure, match="Invalid role"):
        await teams.members.update_role("m2", "superuser")
    assert teams.members.error == "Invalid role: 'superuser'"
    with pytest.raises(ValidationFailure, match="Unknown member"):
        await teams.members.update_role("missing", "admin")
    assert api.count("PUT", "/teams/T1/members/m2") == 0

    teams.select(None)
    with pytest.raises(ValidationFailure, match="Select a team"):
        await teams.members.update_role("m2", "admin")


@pytest.mark.asyncio
async def test_admin_removes_member_but_not_owner(session, teams, api) -> None:
    members = [member_row("m1", "u1", "admin"), member_row("m2", "u2"), member_row("m4", "u4", "owner")]
    await _scoped(session, teams, api, role="admin", members=members)
    api.respond("DELETE", "/teams/T1/members/m2", ok())

    await teams.members.remove("m2")
    assert api.count("DELETE", "/teams/T1/members/m2") == 1

    with pytest.raises(StateInvariantViolation, match="owner cannot be removed"):
        await teams.members.remove("m4")
    assert api.count("DELETE", "/teams/T1/members/m4") == 0


@pytest.mark.asyncio
async def test_plain_member_cannot_remove_others(session, teams, api) -> None:
    members = [member_row("m1", "u1"), member_row("m2", "u2")]
    await _scoped(session, teams, api, role="member", members=members)

    with pytest.raises(StateInvariantViolation):
        await teams.members.remove("m2")
    assert not teams.members.can_remove(teams.members.get("m2"))
    assert teams.members.can_remove(teams.members.get("m1"))


@pytest.mark.asyncio
async def test_removing_self_leaves_the_team(session, teams, api) -> None:
    await _scoped(session, teams, api)
    api.respond("POST", "/teams/T1/members/leave", ok())
    api.respond("GET", "/teams", ok(teams=[team_row("T2", "member")]))
    team_loads = api.count("GET", "/teams")

    await teams.members.remove("m1")

    assert api.count("POST", "/teams/T1/members/leave") == 1
    assert api.count("DELETE", "/teams/T1/members/m1") == 0
    assert teams.selected_team is None
    assert teams.members.items == []
    assert api.count("GET", "/teams") == team_loads + 1
    assert [t.id for t in teams.items] == ["T2"]


@pytest.mark.asyncio
async def test_failed_leave_keeps_scope(session, teams, api) -> None:
    await _scoped(session, teams, api)
    api.respond("POST", "/teams/T1/members/leave", RequestRejected(400, "Owner cannot leave"))

    with pytest.raises(RequestRejected):
        await teams.leave("T1")

    assert teams.selected_team is not None
    assert teams.members.error == "Owner cannot leave"
    assert len(teams.members.items) == 3


@pytest.mark.asyncio
async def test_add_member(session, teams, api) -> None:
    await _scoped(session, teams, api)
    api.respond("POST", "/teams/T1/members", ok())

    await teams.members.add(" new@b.com ", "admin")
    assert api.last("POST", "/teams/T1/members").body == {"email": "new@b.com", "role": "admin"}

    with pytest.raises(StateInvariantViolation):
        await teams.members.add("x@b.com", Role.OWNER)
    with pytest.raises(ValidationFailure):
        await teams.members.add("  ")


@pytest.mark.asyncio
async def test_deleting_selected_team_clears_scope(session, teams, api) -> None:
    await _scoped(session, teams, api)
    api.respond("DELETE", "/teams/T1", ok())
    api.respond("GET", "/teams", ok(teams=[team_row("T2", "member")]))

    await teams.delete("T1")

    assert teams.selected_team is None
    assert teams.members.items == []


@pytest.mark.asyncio
async def test_reload_refreshes_or_drops_the_scope(session, teams, api) -> None:
    await _scoped(session, teams, api)
    api.respond(
        "GET",
        "/teams",
        ok(teams=[team_row("T1", "owner", name="Renamed")]),
        ok(teams=[team_row("T2", "member")]),
    )

    await teams.load()
    assert teams.selected_team.name == "Renamed"
    assert len(teams.members.items) == 3

    await teams.load()
    assert teams.selected_team is None


@pytest.mark.asyncio
async def test_team_listeners_hear_member_updates(session, teams, api) -> None:
    await _scoped(session, teams, api)
    seen: list[int] = []
    teams.subscribe(lambda: seen.append(len(teams.members.items)))

    teams.select(None)
    assert seen == [0]


@pytest.mark.asyncio
async def test_search_matches_name_and_description(teams, api) -> None:
    api.respond(
        "GET",
        "/teams",
        ok(teams=[team_row("T1", name="Core"), team_row("T2", name="Docs", description="core writers")]),
    )
    await teams.load()

    assert [t.id for t in teams.search("CORE")] == ["T1", "T2"]
    assert [t.id for t in teams.search("docs")] == ["T2"]
    assert len(teams.search("")) == 2


@pytest.mark.asyncio
async def test_create_team_requires_name(teams, api) -> None:
    with pytest.raises(ValidationFailure, match="Team name"):
        await teams.create({"name": ""})
    assert api.calls == []
