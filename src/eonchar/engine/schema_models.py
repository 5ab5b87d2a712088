from __future__ import annotations
import logging
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

# Built-in parent status labels
BOTH_ALIVE = "both parents alive"
FATHER_UNKNOWN = "father unknown"
MOTHER_ALIVE = "mother alive"
FATHER_ALIVE = "father alive"
BOTH_DEAD = "both dead"

# status -> (mother alive, father alive)
BUILTIN_ELIGIBILITY: Dict[str, tuple[bool, bool]] = {
    BOTH_ALIVE: (True, True),
    FATHER_UNKNOWN: (True, False),
    MOTHER_ALIVE: (True, False),
    FATHER_ALIVE: (False, True),
    BOTH_DEAD: (False, False),
}

STATUS_LABELS_SV: Dict[str, str] = {
    BOTH_ALIVE: "Båda föräldrarna lever",
    FATHER_UNKNOWN: "Far okänd",
    MOTHER_ALIVE: "Mor lever",
    FATHER_ALIVE: "Far lever",
    BOTH_DEAD: "Båda döda",
}

DEFAULT_NUMBER_OF_LITTERS = "Ob1T6-2"
DEFAULT_LITTER_SIZE = "1"
DEFAULT_OLDER_SIBLING_AGE = "characterAge + Ob1T6"
DEFAULT_YOUNGER_SIBLING_AGE = "characterAge - Ob1T6"
DEFAULT_GENDER_FORMULA = "0.5"
DEFAULT_PARENT_FORMULA = "1T100 + characterApparentAge"
DEFAULT_PARENT_AGE_FORMULA = "oldestSiblingOrCharacterApparentAge + 14 + Ob2T6"

class _ContentModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

class AgeRange(_ContentModel):
    min_actual_age: int = Field(validation_alias=AliasChoices("min_actual_age", "minActualAge"))
    max_actual_age: int = Field(validation_alias=AliasChoices("max_actual_age", "maxActualAge"))
    apparent_age: int = Field(validation_alias=AliasChoices("apparent_age", "apparentAge"))

    def contains(self, actual_age: float) -> bool:
        return self.min_actual_age <= actual_age <= self.max_actual_age

class AgeMapping(_ContentModel):
    """Forward formula, inverse formula and/or bracket table; any may be absent."""
    apparent_age_formula: Optional[str] = Field(default=None, validation_alias=AliasChoices("apparent_age_formula", "apparentAgeFormula"))
    actual_age_from_apparent_formula: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("actual_age_from_apparent_formula", "actualAgeFromApparentFormula"))
    apparent_age_table: List[AgeRange] = Field(default_factory=list, validation_alias=AliasChoices("apparent_age_table", "apparentAgeTable"))

    @field_validator("apparent_age_formula", "actual_age_from_apparent_formula", mode="before")
    @classmethod
    def _formula_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        if not isinstance(v, str) or not v.strip():
            return None
        return v

    @field_validator("apparent_age_table", mode="before")
    @classmethod
    def _usable_rows(cls, v):
        # rows that don't validate are skipped; the rest of the table still applies
        if not isinstance(v, list):
            return []
        rows = []
        for i, row in enumerate(v):
            try:
                rows.append(AgeRange.model_validate(row))
            except ValidationError as e:
                logger.warning("apparentAgeTable[%d] ignored: %s", i, e.errors()[0]["msg"])
        return rows

class SiblingFormula(_ContentModel):
    number_of_litters: str = Field(DEFAULT_NUMBER_OF_LITTERS, validation_alias=AliasChoices("number_of_litters", "numberOfLitters"))
    litter_size: str = Field(DEFAULT_LITTER_SIZE, validation_alias=AliasChoices("litter_size", "litterSize"))
    older_sibling_age_formula: str = Field(DEFAULT_OLDER_SIBLING_AGE,
                                           validation_alias=AliasChoices("older_sibling_age_formula", "olderSiblingAgeFormula"))
    younger_sibling_age_formula: str = Field(DEFAULT_YOUNGER_SIBLING_AGE,
                                             validation_alias=AliasChoices("younger_sibling_age_formula", "youngerSiblingAgeFormula"))
    gender_formula: str = Field(DEFAULT_GENDER_FORMULA, validation_alias=AliasChoices("gender_formula", "genderFormula"))

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed(cls, data):
        # null, blank or non-scalar entries fall back to the defaults
        if isinstance(data, dict):
            data = {k: v for k, v in data.items()
                    if isinstance(v, (str, int, float)) and not isinstance(v, bool) and str(v).strip()}
        return data

    @field_validator("number_of_litters", "litter_size", "older_sibling_age_formula",
                     "younger_sibling_age_formula", "gender_formula", mode="before")
    @classmethod
    def _numbers_as_text(cls, v):
        # YAML turns "1" and 0.5 into numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

class ParentStatusRange(_ContentModel):
    min: int
    max: int
    result: str
    mother_alive: Optional[bool] = Field(default=None, validation_alias=AliasChoices("mother_alive", "motherAlive"))
    father_alive: Optional[bool] = Field(default=None, validation_alias=AliasChoices("father_alive", "fatherAlive"))

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max

    def eligibility(self) -> tuple[bool, bool]:
        mother, father = BUILTIN_ELIGIBILITY.get(self.result, (False, False))
        if self.mother_alive is not None:
            mother = self.mother_alive
        if self.father_alive is not None:
            father = self.father_alive
        return mother, father

def default_parent_table() -> List[ParentStatusRange]:
    return [
        ParentStatusRange(min=1, max=60, result=BOTH_ALIVE),
        ParentStatusRange(min=61, max=80, result=FATHER_UNKNOWN),
        ParentStatusRange(min=81, max=88, result=MOTHER_ALIVE),
        ParentStatusRange(min=89, max=95, result=FATHER_ALIVE),
        ParentStatusRange(min=96, max=999, result=BOTH_DEAD),
    ]

class ParentFormula(_ContentModel):
    formula: str = DEFAULT_PARENT_FORMULA
    table: List[ParentStatusRange] = Field(default_factory=default_parent_table)

    @model_validator(mode="before")
    @classmethod
    def _fill_partial(cls, data):
        # partial overrides: an empty formula or table means "use the default"
        if isinstance(data, dict):
            data = {k: v for k, v in data.items() if v not in (None, "", [])}
        return data

    @field_validator("formula", mode="before")
    @classmethod
    def _formula_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v if isinstance(v, str) else DEFAULT_PARENT_FORMULA

    @field_validator("table", mode="before")
    @classmethod
    def _usable_rows(cls, v):
        if not isinstance(v, list):
            return default_parent_table()
        rows = []
        for i, row in enumerate(v):
            try:
                rows.append(ParentStatusRange.model_validate(row))
            except ValidationError as e:
                logger.warning("parentFormula.table[%d] ignored: %s", i, e.errors()[0]["msg"])
        return rows or default_parent_table()

    def eligibility(self, status: str) -> tuple[bool, bool]:
        for row in self.table:
            if row.result == status:
                return row.eligibility()
        return BUILTIN_ELIGIBILITY.get(status, (False, False))

class RaceMetadata(_ContentModel):
    description: str = ""
    sibling_formula: Optional[SiblingFormula] = Field(default=None, validation_alias=AliasChoices("sibling_formula", "siblingFormula"))
    parent_formula: Optional[ParentFormula] = Field(default=None, validation_alias=AliasChoices("parent_formula", "parentFormula"))
    parent_age_formula: Optional[str] = Field(default=None, validation_alias=AliasChoices("parent_age_formula", "parentAgeFormula"))

    @field_validator("sibling_formula", "parent_formula", mode="before")
    @classmethod
    def _objects_only(cls, v):
        # stored metadata is loosely typed; anything that is not a mapping is ignored
        return v if isinstance(v, dict) else None

    @field_validator("parent_age_formula", mode="before")
    @classmethod
    def _strings_only(cls, v):
        return v if isinstance(v, str) and v.strip() else None

class RaceCategory(AgeMapping):
    name: str
    ruleset: str = "EON"
    description: str = ""
    sibling_formula: Optional[SiblingFormula] = Field(default=None, validation_alias=AliasChoices("sibling_formula", "siblingFormula"))
    parent_formula: Optional[ParentFormula] = Field(default=None, validation_alias=AliasChoices("parent_formula", "parentFormula"))
    parent_age_formula: Optional[str] = Field(default=None, validation_alias=AliasChoices("parent_age_formula", "parentAgeFormula"))

    @field_validator("sibling_formula", "parent_formula", mode="before")
    @classmethod
    def _objects_only(cls, v):
        return v if isinstance(v, (dict, BaseModel)) else None

    @field_validator("parent_age_formula", mode="before")
    @classmethod
    def _strings_only(cls, v):
        return v if isinstance(v, str) and v.strip() else None

    @property
    def age_mapping(self) -> AgeMapping:
        return AgeMapping(
            apparent_age_formula=self.apparent_age_formula,
            actual_age_from_apparent_formula=self.actual_age_from_apparent_formula,
            apparent_age_table=self.apparent_age_table,
        )

class Race(_ContentModel):
    name: str
    ruleset: str = "EON"
    category: str = ""
    modifiers: Dict[str, int] = Field(default_factory=dict)
    metadata: RaceMetadata = Field(default_factory=RaceMetadata)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, v):
        return v if isinstance(v, dict) else {}
