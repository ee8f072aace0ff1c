from __future__ import annotations

from dataclasses import dataclass


# load order: person first, then the rest as listed.
CDM_TABLES: tuple[str, ...] = (
    "person",
    "observation_period",
    "visit_occurrence",
    "condition_occurrence",
    "drug_exposure",
    "procedure_occurrence",
    "measurement",
    "observation",
    "death",
    "payer_plan_period",
    "cdm_source",
)

DEFAULT_SAMPLE_SIZE = 1000


@dataclass(frozen=True)
class BuildConfig:
    """
    Settings for one sample build.

    - `sample_size`: max number of person ids kept.
    - `tables`: known target tables, in load order (the person table is always loaded first).
    - `person_table` / `person_id_column`: which table drives sampling, and the column filtered on.
    - `fan_out`: a file matching several tables loads into all of them; when off, only into the most specific one.
    """
    sample_size: int = DEFAULT_SAMPLE_SIZE
    tables: tuple[str, ...] = CDM_TABLES
    person_table: str = "person"
    person_id_column: str = "person_id"
    fan_out: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.sample_size, bool) or not isinstance(self.sample_size, int) or self.sample_size <= 0:
            raise ValueError(f"sample_size must be a positive integer, got {self.sample_size!r}")
        if not self.tables:
            raise ValueError("tables must not be empty")
        if self.person_table not in self.tables:
            raise ValueError(f"person_table {self.person_table!r} is not one of tables {list(self.tables)}")

    @property
    def dependent_tables(self) -> tuple[str, ...]:
        """Every table except the person table, in configured order."""
        return tuple(t for t in self.tables if t != self.person_table)
