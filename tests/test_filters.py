from ledger.filters import (
    FilterSelection,
    cascade_choices,
    facet_options,
    filtered_rows,
    ledger_order,
    normalize_selection,
    options_for,
    selection_from_state,
    selection_summary,
)


def test_no_selection_keeps_everything_in_order(sample_rows):
    assert [r.row_id for r in filtered_rows(FilterSelection(), sample_rows)] == ["r1", "r2", "r3"]


def test_facets_combine_with_and(sample_rows):
    sel = FilterSelection(plant="Plant A", category="Reliability")
    assert [r.row_id for r in filtered_rows(sel, sample_rows)] == ["r1", "r2"]
    sel = sel.with_facet("class", "Electrical")
    assert filtered_rows(sel, sample_rows) == []


def test_matching_is_exact(sample_rows):
    assert filtered_rows(FilterSelection(plant="plant a"), sample_rows) == []


def test_options_ignore_the_facet_being_chosen(sample_rows):
    sel = FilterSelection(plant="Plant A")
    assert options_for("plant", sel, sample_rows) == ["Plant A", "Plant B"]
    assert options_for("issue", sel, sample_rows) == ["Kiln Vibration"]
    assert options_for("class", sel, sample_rows) == ["Mechanical"]


def test_options_skip_blank_values(sample_rows):
    rows = sample_rows + [sample_rows[2].replace(row_id="r4", category="")]
    assert options_for("category", FilterSelection(), rows) == ["Process", "Reliability"]


def test_facet_options_keys(sample_rows):
    opts = facet_options(FilterSelection(category="Process"), sample_rows)
    assert set(opts) == {"plant", "issue", "class", "category"}
    assert opts["plant"] == ["Plant B"]
    assert opts["category"] == ["Process", "Reliability"]


def test_selection_helpers():
    sel = FilterSelection(plant="Plant A", issue="Belt Slip")
    assert sel.is_active()
    assert sel.cleared("issue") == FilterSelection(plant="Plant A")
    assert not sel.cleared().is_active()
    assert sel.as_dict() == {"plant": "Plant A", "issue": "Belt Slip", "class": "", "category": ""}
    assert selection_summary(sel)["class_name"] == "All"


def test_normalize_selection_accepts_both_class_keys():
    assert normalize_selection({"class": " Mechanical "}).class_name == "Mechanical"
    assert normalize_selection({"class_name": "Electrical", "plant": None}) == FilterSelection(class_name="Electrical")
    assert normalize_selection(None) == FilterSelection()


def test_ledger_order_is_stable_by_plant_then_issue(sample_rows):
    rows = [sample_rows[2], sample_rows[1], sample_rows[0]]
    assert [r.row_id for r in ledger_order(rows)] == ["r2", "r1", "r3"]


def test_clearing_a_facet_restores_its_options(sample_rows):
    sel = FilterSelection(issue="Belt Slip")
    assert options_for("plant", sel, sample_rows) == ["Plant B"]
    assert options_for("plant", sel.cleared("issue"), sample_rows) == ["Plant A", "Plant B"]


def test_category_narrows_plant_choices(sample_rows):
    choices = cascade_choices(FilterSelection(category="Process"), sample_rows)
    assert choices["plant"] == ["Plant B"]
    assert choices["issue"] == ["Belt Slip"]
    assert choices["category"] == ["Process", "Reliability"]


def test_excluded_choice_stays_listed_so_it_can_be_cleared(sample_rows):
    sel = FilterSelection(plant="Plant A", category="Process")
    choices = cascade_choices(sel, sample_rows)
    assert choices["plant"] == ["Plant A", "Plant B"]
    assert choices["category"] == ["Process", "Reliability"]
    assert filtered_rows(sel, sample_rows) == []


def test_selection_from_widget_state():
    state = {"facet_plant": "All", "facet_class": "Mechanical", "facet_category": None}
    assert selection_from_state(state, blank="All") == FilterSelection(class_name="Mechanical")
    assert selection_from_state({}) == FilterSelection()
