import pytest
from pydantic import ValidationError
from eonchar.engine.formulas import resolve_sibling_formula, resolve_parent_formula, resolve_parent_age_formula
from eonchar.engine.schema_models import (
    AgeRange, ParentFormula, Race, RaceCategory, RaceMetadata, SiblingFormula,
    DEFAULT_PARENT_AGE_FORMULA, DEFAULT_PARENT_FORMULA,
)

def test_sibling_formula_camel_case_and_numbers():
    sf = SiblingFormula.model_validate({"numberOfLitters": "1T6-2", "litterSize": 2, "genderFormula": 0.5})
    assert sf.number_of_litters == "1T6-2"
    assert sf.litter_size == "2"
    assert sf.gender_formula == "0.5"
    # untouched fields keep their defaults
    assert sf.older_sibling_age_formula == "characterAge + Ob1T6"
    assert sf.younger_sibling_age_formula == "characterAge - Ob1T6"

def test_parent_formula_partial_overrides():
    only_formula = ParentFormula.model_validate({"formula": "1T100"})
    assert only_formula.formula == "1T100"
    assert [r.result for r in only_formula.table] == [
        "both parents alive", "father unknown", "mother alive", "father alive", "both dead"]

    only_table = ParentFormula.model_validate({"formula": "", "table": [{"min": 1, "max": 100, "result": "x"}]})
    assert only_table.formula == DEFAULT_PARENT_FORMULA
    assert len(only_table.table) == 1

    assert len(ParentFormula.model_validate({"table": []}).table) == 5

def test_age_range_requires_all_fields():
    with pytest.raises(ValidationError):
        AgeRange.model_validate({"minActualAge": 1, "apparentAge": 5})
    r = AgeRange.model_validate({"minActualAge": 1, "maxActualAge": 9, "apparentAge": 5})
    assert r.contains(1) and r.contains(9) and not r.contains(10)

def test_metadata_ignores_malformed_entries():
    md = RaceMetadata.model_validate({"siblingFormula": "oops", "parentFormula": [1, 2],
                                      "parentAgeFormula": 5, "lengthVariable": 170})
    assert md.sibling_formula is None
    assert md.parent_formula is None
    assert md.parent_age_formula is None
    assert Race.model_validate({"name": "X", "metadata": None}).metadata == RaceMetadata()

def test_category_age_mapping():
    cat = RaceCategory.model_validate({
        "name": "Alver",
        "apparentAgeFormula": "actualAge / 4",
        "apparentAgeTable": [{"minActualAge": 0, "maxActualAge": 20, "apparentAge": 10}],
    })
    m = cat.age_mapping
    assert m.apparent_age_formula == "actualAge / 4"
    assert m.actual_age_from_apparent_formula is None
    assert m.apparent_age_table[0].apparent_age == 10

def _race(**metadata) -> Race:
    return Race.model_validate({"name": "R", "category": "C", "metadata": metadata})

def _category(**extra) -> RaceCategory:
    return RaceCategory.model_validate({"name": "C", **extra})

def test_sibling_formula_tiers():
    race_sf = {"numberOfLitters": "Ob2T6-4"}
    cat_sf = {"numberOfLitters": "1T6-2"}
    assert resolve_sibling_formula(_race(siblingFormula=race_sf), _category(siblingFormula=cat_sf)).number_of_litters == "Ob2T6-4"
    assert resolve_sibling_formula(_race(), _category(siblingFormula=cat_sf)).number_of_litters == "1T6-2"
    assert resolve_sibling_formula(_race(), _category()) == SiblingFormula()
    assert resolve_sibling_formula(None, None) == SiblingFormula()

def test_parent_formula_tiers():
    cat = _category(parentFormula={"formula": "1T100"})
    assert resolve_parent_formula(_race(parentFormula={"formula": "2T6 + characterApparentAge"}), cat).formula \
        == "2T6 + characterApparentAge"
    assert resolve_parent_formula(_race(), cat).formula == "1T100"
    assert resolve_parent_formula(_race(), _category()) == ParentFormula()

def test_parent_age_formula_tiers():
    cat = _category(parentAgeFormula="oldestSiblingOrCharacterApparentAge + 30")
    assert resolve_parent_age_formula(_race(parentAgeFormula="oldestSiblingOrCharacterApparentAge + 1T10"), cat) \
        == "oldestSiblingOrCharacterApparentAge + 1T10"
    assert resolve_parent_age_formula(_race(parentAgeFormula="  "), cat) == "oldestSiblingOrCharacterApparentAge + 30"
    assert resolve_parent_age_formula(_race(), _category(parentAgeFormula="")) == DEFAULT_PARENT_AGE_FORMULA
    assert resolve_parent_age_formula(None, None) == DEFAULT_PARENT_AGE_FORMULA

def test_malformed_sibling_fields_fall_back_to_defaults():
    race = Race.model_validate({"name": "X", "metadata": {"siblingFormula": {
        "numberOfLitters": "Ob1T6-2", "genderFormula": None, "litterSize": "  ", "youngerSiblingAgeFormula": [1]}}})
    sf = race.metadata.sibling_formula
    assert sf.number_of_litters == "Ob1T6-2"
    assert sf.gender_formula == "0.5"
    assert sf.litter_size == "1"
    assert sf.younger_sibling_age_formula == "characterAge - Ob1T6"

def test_numeric_age_formulas_become_text():
    cat = RaceCategory.model_validate({"name": "C", "siblingFormula": {"olderSiblingAgeFormula": 30},
                                       "apparentAgeFormula": 12, "parentAgeFormula": 40})
    assert cat.sibling_formula.older_sibling_age_formula == "30"
    assert cat.apparent_age_formula == "12"
    # a bare number is not a usable parent age formula
    assert cat.parent_age_formula is None
    assert resolve_parent_age_formula(_race(), cat) == DEFAULT_PARENT_AGE_FORMULA

def test_malformed_table_rows_are_skipped():
    cat = RaceCategory.model_validate({
        "name": "C",
        "siblingFormula": "oops",
        "apparentAgeTable": [
            {"minActualAge": 0, "maxActualAge": 20, "apparentAge": 10},
            {"minActualAge": 21, "apparentAge": 15},
            "junk",
        ],
        "parentFormula": {"formula": 50, "table": [{"min": 1, "max": 100}]},
    })
    assert cat.sibling_formula is None
    assert [r.apparent_age for r in cat.apparent_age_table] == [10]
    assert cat.parent_formula.formula == "50"
    assert len(cat.parent_formula.table) == 5
    assert RaceCategory.model_validate({"name": "C", "apparentAgeTable": None}).apparent_age_table == []
