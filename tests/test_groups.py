import pytest

from sosmeet.errors import NotAMemberError, NotFoundError
from sosmeet.persistence.groups import GroupRegistry
from sosmeet.persistence.identity import IdentityStore
from sosmeet.persistence.validation import AlarmFields


@pytest.fixture
def registry():
    return GroupRegistry(IdentityStore())


def test_create_group_seeds_three_codes(registry):
    group = registry.create_group("alice", "Family")

    assert group.owner == "alice"
    assert group.member_list() == ["alice"]
    assert len(group.alarm_codes) == 3
    assert {c.mode for c in group.alarm_codes.values()} == {"CALL_LIKE", "MESSAGE", "NOTIFICATION"}
    assert [c.title for c in group.alarm_codes.values()] == ["SOS", "Pick Me Up", "Check In"]
    assert all(c.created_by == "alice" for c in group.alarm_codes.values())
    assert group.id.startswith("grp_")


def test_group_ids_are_unique(registry):
    ids = {registry.create_group("alice", "G").id for _ in range(20)}
    assert len(ids) == 20


def test_add_member_creates_user(registry):
    group = registry.create_group("alice", "Family")
    registry.add_member(group.id, "alice", "bob")

    assert group.member_list() == ["alice", "bob"]
    assert "bob" in registry.identity


def test_add_member_by_non_member_changes_nothing(registry):
    group = registry.create_group("alice", "Family")
    with pytest.raises(NotAMemberError):
        registry.add_member(group.id, "mallory", "eve")
    assert group.member_list() == ["alice"]
    assert "eve" not in registry.identity


def test_new_member_can_add_others(registry):
    group = registry.create_group("alice", "Family")
    registry.add_member(group.id, "alice", "bob")
    registry.add_member(group.id, "bob", "carol")
    assert group.member_list() == ["alice", "bob", "carol"]


def test_unknown_group(registry):
    with pytest.raises(NotFoundError):
        registry.add_member("grp_missing", "alice", "bob")


def test_create_alarm_code_appends(registry):
    group = registry.create_group("alice", "Family")
    fields = AlarmFields(title="Evac", mode="CALL_LIKE", color_hex="#00ff00",
                         sound_key="ping", message_text="Leave now")
    registry.create_alarm_code(group.id, "alice", fields)

    codes = list(group.alarm_codes.values())
    assert len(codes) == 4
    evac = codes[-1]
    assert (evac.title, evac.mode, evac.message_text) == ("Evac", "CALL_LIKE", "Leave now")
    assert evac.created_by == "alice"


def test_create_alarm_code_by_non_member(registry):
    group = registry.create_group("alice", "Family")
    with pytest.raises(NotAMemberError):
        registry.create_alarm_code(group.id, "bob", AlarmFields(title="X"))
    assert len(group.alarm_codes) == 3


def test_alarm_code_lookup_is_scoped_to_its_group(registry):
    family = registry.create_group("alice", "Family")
    work = registry.create_group("alice", "Work")
    code_id = next(iter(family.alarm_codes))

    assert registry.get_alarm_code(family, code_id).id == code_id
    with pytest.raises(NotFoundError):
        registry.get_alarm_code(work, code_id)


def test_groups_for(registry):
    family = registry.create_group("alice", "Family")
    registry.create_group("bob", "Band")
    registry.add_member(family.id, "alice", "bob")

    assert [g.name for g in registry.groups_for("bob")] == ["Family", "Band"]
    assert [g.name for g in registry.groups_for("alice")] == ["Family"]
    assert registry.groups_for("carol") == []


def test_wire_shape(registry):
    group = registry.create_group("alice", "Family")
    registry.add_member(group.id, "alice", "bob")
    wire = group.to_wire()

    assert set(wire) == {"id", "name", "owner", "members", "alarmCodes"}
    assert wire["members"] == ["alice", "bob"]
    assert set(wire["alarmCodes"][0]) == {
        "id", "title", "colorHex", "soundKey", "mode", "messageText", "createdBy", "createdAt",
    }
    assert wire["alarmCodes"][0]["colorHex"] == "#ff2d2d"
