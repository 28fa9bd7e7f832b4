import pytest

from app.services.errors import FetchFailed, ValidationFailed
from app.services.escalation import EscalationState
from app.services.hierarchy import CURRICULUM, LOCATION, flat_hierarchy
from app.services.options_editor import OptionsEditor


async def test_switching_board_clears_descendants_and_rescopes_grades(repo, seeded):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    boards = editor.column(0).items
    cbse = next(b for b in boards if b.value == "CBSE")
    icse = next(b for b in boards if b.value == "ICSE")

    await editor.select(0, cbse)
    cbse_grades = {g.id for g in editor.column(1).items}
    assert {g.label for g in editor.column(1).items} == {"Grade 9", "Grade 10"}

    await editor.select(1, editor.column(1).items[0])
    await editor.select(2, editor.column(2).items[0])
    assert all(sid is not None for _, sid in editor.chain()[:3])

    await editor.select(0, icse)
    assert editor.chain() == [("Board", icse.id), ("Grade", None), ("Subject", None), ("Chapter", None)]
    icse_grades = {g.id for g in editor.column(1).items}
    assert {g.label for g in editor.column(1).items} == {"Class 9", "Class 10"}
    assert cbse_grades.isdisjoint(icse_grades)
    assert repo.calls[-1] == ("list_options", "GRADE", icse.id)
    assert editor.column(2).items == []
    assert editor.column(3).items == []


async def test_open_blanks_child_levels_without_calls(repo, seeded):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    assert repo.calls == [("list_options", "BOARD", None)]
    assert all(c.items == [] for c in editor.columns[1:])


async def test_cancelled_city_delete_keeps_city(repo, seeded):
    editor = OptionsEditor(repo, LOCATION, delete_steps=3)
    await editor.open()
    cities = editor.column(0)
    bhopal = next(c for c in cities.items if c.label == "Bhopal")

    cities.request_delete(bhopal)
    assert cities.escalation.step == 1
    await cities.escalation.confirm()
    assert cities.escalation.step == 2
    cities.escalation.cancel()
    assert cities.escalation.state == EscalationState.IDLE

    assert "BHOPAL" in [c.value for c in await repo.list_options("CITY")]
    assert repo.count("delete_option") == 0

    # Re-requesting starts over
    assert cities.request_delete(bhopal).step == 1


async def test_city_delete_runs_confirming_1_2_3_then_executing(repo, seeded):
    editor = OptionsEditor(repo, LOCATION, delete_steps=3)
    await editor.open()
    cities = editor.column(0)
    bhopal = next(c for c in cities.items if c.label == "Bhopal")
    await editor.select(0, bhopal)
    assert [a.label for a in editor.column(1).items] == ["MP Nagar", "Arera Colony"]

    cities.request_delete(bhopal)
    for _ in range(3):
        await cities.escalation.confirm()
    steps = [(t.to_state, t.step) for t in cities.escalation.history]
    assert steps == [
        (EscalationState.CONFIRMING, 1),
        (EscalationState.CONFIRMING, 2),
        (EscalationState.CONFIRMING, 3),
        (EscalationState.EXECUTING, 3),
        (EscalationState.DONE, 3),
    ]
    assert repo.count("delete_option") == 1

    # The deleted city was selected: the path is cleared and areas are blank
    assert editor.chain() == [("City", None), ("Area", None)]
    assert editor.column(1).items == []
    assert "BHOPAL" not in [c.value for c in await repo.list_options("CITY")]
    assert await repo.list_options("AREA_BHOPAL") == []


async def test_deleting_unselected_item_keeps_selection(repo, seeded):
    editor = OptionsEditor(repo, LOCATION, delete_steps=1)
    await editor.open()
    bhopal, indore = editor.column(0).items
    await editor.select(0, bhopal)

    editor.column(0).request_delete(indore)
    await editor.column(0).escalation.confirm()
    assert editor.controller.selected_id(0) == bhopal.id
    assert len(editor.column(1).items) == 2


async def test_renaming_selected_city_rescopes_areas(repo, seeded):
    editor = OptionsEditor(repo, LOCATION)
    await editor.open()
    bhopal = editor.column(0).items[0]
    await editor.select(0, bhopal)
    area = editor.column(1).items[0]
    await editor.select(1, area)

    renamed = await editor.column(0).update(bhopal.id, "Bhopal City")
    assert renamed.value == "BHOPAL_CITY"
    assert editor.controller.selected(0).value == "BHOPAL_CITY"
    assert editor.controller.selected(1) is None
    # Areas were stored under AREA_BHOPAL; the renamed city has a new scope tag
    assert repo.calls[-1] == ("list_options", "AREA_BHOPAL_CITY", bhopal.id)
    assert editor.column(1).items == []


async def test_create_in_child_column_uses_selected_parent(repo, seeded):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    cbse = editor.column(0).items[0]
    await editor.select(0, cbse)
    grade9 = editor.column(1).items[0]
    await editor.select(1, grade9)
    await editor.select(2, editor.column(2).items[0])

    chapter = await editor.column(3).create("Real Numbers")
    assert chapter.type == "CHAPTER"
    assert chapter.parent == editor.controller.selected_id(2)
    assert [c.label for c in editor.column(3).items] == ["Real Numbers"]


async def test_add_area_for_city(repo, seeded):
    editor = OptionsEditor(repo, LOCATION)
    await editor.open()
    indore = next(c for c in editor.column(0).items if c.value == "INDORE")
    await editor.select(0, indore)

    area = await editor.add_area_for_city("Indore", " Rau ")
    assert area.type == "AREA_INDORE"
    assert area.value == "RAU"
    assert area.parent == indore.id
    assert "Rau" in [a.label for a in editor.column(1).items]


async def test_add_area_for_city_validation(repo, seeded):
    editor = OptionsEditor(repo, LOCATION)
    with pytest.raises(ValidationFailed):
        await editor.add_area_for_city("", "Rau")
    with pytest.raises(ValidationFailed):
        await editor.add_area_for_city("INDORE", "  ")
    assert repo.calls == []
    with pytest.raises(ValidationFailed, match="not found"):
        await editor.add_area_for_city("Pune", "Baner")

    repo.fail("list_options")
    with pytest.raises(FetchFailed):
        await editor.add_area_for_city("INDORE", "Rau")
    assert repo.count("upsert_option") == 0


async def test_switch_hierarchy_resets_chain(repo, seeded):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    await editor.select(0, editor.column(0).items[0])

    items = await editor.switch_hierarchy(LOCATION)
    assert [c.value for c in items] == ["BHOPAL", "INDORE"]
    assert editor.chain() == [("City", None), ("Area", None)]

    modes = await editor.switch_hierarchy(flat_hierarchy("MODE"))
    assert [m.label for m in modes] == ["Online", "Offline", "Hybrid"]


async def test_load_types(repo, seeded):
    editor = OptionsEditor(repo, CURRICULUM)
    types = await editor.load_types()
    assert "AREA_INDORE" in [t.value for t in types]


async def test_switching_parent_discards_edit_started_under_old_parent(repo, seeded, find_option):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    cbse = await find_option(repo, "BOARD", "CBSE")
    icse = await find_option(repo, "BOARD", "ICSE")
    await editor.select(0, cbse)
    grades = editor.column(1)
    grade9 = next(g for g in grades.items if g.label == "Grade 9")

    grades.start_edit(grade9)
    await editor.select(0, icse)
    assert grades.form.editing is None
    assert grades.form.label == ""

    with pytest.raises(ValidationFailed):
        await grades.save()
    assert repo.count("upsert_option") == 0
    assert "Grade 9" in [g.label for g in await repo.list_options("GRADE", cbse.id)]


async def test_switching_parent_closes_open_delete_dialog(repo, seeded, find_option):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    cbse = await find_option(repo, "BOARD", "CBSE")
    icse = await find_option(repo, "BOARD", "ICSE")
    await editor.select(0, cbse)
    grades = editor.column(1)
    grades.request_delete(grades.items[0])
    await grades.escalation.confirm()

    await editor.select(0, icse)
    assert grades.escalation.state == EscalationState.IDLE
    assert repo.count("delete_option") == 0


async def test_blanked_column_closes_open_delete_dialog(repo, seeded, find_option):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    await editor.select(0, await find_option(repo, "BOARD", "CBSE"))
    subjects_parent = editor.column(1).items[0]
    await editor.select(1, subjects_parent)
    subjects = editor.column(2)
    subjects.request_delete(subjects.items[0])

    editor.controller.clear_from(1)
    assert subjects.items == []
    assert subjects.escalation.state == EscalationState.IDLE
    assert subjects.escalation.prompt is None


async def test_refresh_keeps_edit_in_progress(repo, seeded):
    editor = OptionsEditor(repo, CURRICULUM)
    await editor.open()
    await editor.select(0, editor.column(0).items[0])
    grades = editor.column(1)
    grades.start_edit(grades.items[0])
    await grades.refresh()
    assert grades.form.editing is not None
