"""Entity-kind descriptors and the built-in catalogue.

A :class:`MappingKind` carries everything that differs between entity kinds:
column names, key arity and types, whether the kind references a subject, and
how migration pages are ordered. The registry engine itself is written once
against this description.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from mapregistry.domain.errors import MappingValidationError, UnknownMappingKindError
from mapregistry.domain.model.enums import PageOrder

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from mapregistry.domain.model.mapping import MappingRecord

type KeyComponent = str | int
type SecondaryKey = tuple[KeyComponent, ...]


@dataclass(frozen=True, slots=True)
class KeyColumn:
    """One key column: its storage name and Python type (``str`` or ``int``)."""

    name: str
    python_type: type[str] | type[int] = str

    def coerce(self, value: object) -> KeyComponent:
        if self.python_type is int:
            return self._coerce_int(value)
        return self._coerce_str(value)

    def _coerce_int(self, value: object) -> int:
        if isinstance(value, bool):
            raise MappingValidationError(f"{self.name} must be an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError as exc:
                raise MappingValidationError(
                    f"{self.name} must be an integer, got {value!r}"
                ) from exc
        raise MappingValidationError(f"{self.name} must be an integer, got {value!r}")

    def _coerce_str(self, value: object) -> str:
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise MappingValidationError(f"{self.name} must be a string, got {value!r}")
        text = str(value).strip()
        if not text:
            raise MappingValidationError(f"{self.name} must not be blank")
        return text


@dataclass(frozen=True, slots=True)
class MappingKind:
    """Per-kind table layout and capabilities.

    ``group_column`` names the column a group merge (e.g. a booking move)
    selects on. It is either one of the secondary key columns or, when it is
    not part of the key, a separate nullable column of type ``group_type``
    carried on each record as ``group_ref``.
    """

    name: str
    table_name: str
    primary: KeyColumn
    secondary: tuple[KeyColumn, ...]
    subject_column: str | None = None
    group_column: str | None = None
    group_type: type[str] | type[int] = int
    average_rows_per_subject: int | None = None
    page_order: PageOrder = PageOrder.LABEL_DESC
    event_prefix: str | None = None

    def __post_init__(self) -> None:
        if not self.secondary:
            raise ValueError(f"Kind {self.name} needs at least one secondary key column")
        if self.group_column is not None:
            if self.group_column in {self.primary.name, self.subject_column}:
                raise ValueError(
                    f"Kind {self.name}: group column {self.group_column} "
                    "must not be the primary or subject column"
                )
            if self.subject_column is None:
                raise ValueError(f"Kind {self.name}: group merge requires a subject column")

    @property
    def secondary_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.secondary)

    @property
    def supports_subject(self) -> bool:
        return self.subject_column is not None

    @property
    def supports_group_merge(self) -> bool:
        return self.group_column is not None

    @property
    def stores_group_separately(self) -> bool:
        """True when the group column is an extra column rather than part of the key."""
        return self.group_column is not None and self.group_column not in self.secondary_names

    @property
    def group(self) -> KeyColumn:
        if self.group_column is None:
            raise MappingValidationError(f"{self.name} mappings cannot be merged by group")
        for column in self.secondary:
            if column.name == self.group_column:
                return column
        return KeyColumn(self.group_column, self.group_type)

    @property
    def event_name(self) -> str:
        return self.event_prefix or self.name

    def primary_key(self, value: object) -> KeyComponent:
        return self.primary.coerce(value)

    def secondary_key(self, *components: object) -> SecondaryKey:
        """Validate arity and coerce each component to its column type."""

        if len(components) != len(self.secondary):
            expected = ", ".join(self.secondary_names)
            raise MappingValidationError(
                f"{self.name} secondary key needs {len(self.secondary)} component(s) "
                f"({expected}), got {len(components)}"
            )
        return tuple(
            column.coerce(value) for column, value in zip(self.secondary, components, strict=True)
        )

    def group_key(self, value: object) -> KeyComponent:
        return self.group.coerce(value)

    def coerce_group_ref(self, value: object | None) -> KeyComponent | None:
        if value is None:
            return None
        if not self.stores_group_separately:
            raise MappingValidationError(f"{self.name} mappings do not carry a separate group")
        return self.group_key(value)

    def group_of(self, record: MappingRecord) -> KeyComponent | None:
        if self.stores_group_separately:
            return record.group_ref
        return record.secondary_key[self.secondary_names.index(self.group.name)]

    def describe_secondary(self, key: SecondaryKey) -> str:
        return ", ".join(
            f"{name}={value}" for name, value in zip(self.secondary_names, key, strict=True)
        )

    def describe_primary(self, key: KeyComponent) -> str:
        return f"{self.primary.name}={key}"


def _catalogue(kinds: Iterable[MappingKind]) -> Mapping[str, MappingKind]:
    return MappingProxyType({kind.name: kind for kind in kinds})


INCIDENTS: Final = MappingKind(
    name="incidents",
    table_name="incident_mapping",
    primary=KeyColumn("dps_incident_id"),
    secondary=(KeyColumn("nomis_incident_id", int),),
    event_prefix="incident",
)

CSRAS: Final = MappingKind(
    name="csras",
    table_name="csra_mapping",
    primary=KeyColumn("dps_csra_id"),
    secondary=(KeyColumn("nomis_booking_id", int), KeyColumn("nomis_sequence", int)),
    subject_column="offender_no",
    group_column="nomis_booking_id",
    average_rows_per_subject=2,
    event_prefix="csra",
)

ADJUDICATIONS: Final = MappingKind(
    name="adjudications",
    table_name="adjudication_mapping",
    primary=KeyColumn("charge_number"),
    secondary=(KeyColumn("adjudication_number", int), KeyColumn("charge_sequence", int)),
    event_prefix="adjudication",
)

INCENTIVES: Final = MappingKind(
    name="incentives",
    table_name="incentive_mapping",
    primary=KeyColumn("incentive_id", int),
    secondary=(
        KeyColumn("nomis_booking_id", int),
        KeyColumn("nomis_incentive_sequence", int),
    ),
    page_order=PageOrder.PRIMARY_ASC,
    event_prefix="incentive",
)

COURT_CASES: Final = MappingKind(
    name="court-cases",
    table_name="court_case_mapping",
    primary=KeyColumn("dps_court_case_id"),
    secondary=(KeyColumn("nomis_court_case_id", int),),
    event_prefix="court-case",
)

CSIP_REPORTS: Final = MappingKind(
    name="csip-reports",
    table_name="csip_mapping",
    primary=KeyColumn("dps_csip_id"),
    secondary=(KeyColumn("nomis_csip_id", int),),
    event_prefix="csip",
)

TRANSACTIONS: Final = MappingKind(
    name="transactions",
    table_name="transaction_mapping",
    primary=KeyColumn("dps_transaction_id"),
    secondary=(KeyColumn("nomis_transaction_id", int),),
    subject_column="offender_no",
    group_column="nomis_booking_id",
    average_rows_per_subject=2,
)

CORPORATES: Final = MappingKind(
    name="corporates",
    table_name="corporate_mapping",
    primary=KeyColumn("dps_id"),
    secondary=(KeyColumn("nomis_id", int),),
    event_prefix="corporate",
)

VISIT_SLOTS: Final = MappingKind(
    name="visit-slots",
    table_name="visit_time_slot_mapping",
    primary=KeyColumn("dps_id"),
    secondary=(
        KeyColumn("nomis_prison_id"),
        KeyColumn("nomis_day_of_week"),
        KeyColumn("nomis_slot_sequence", int),
    ),
    page_order=PageOrder.PRIMARY_ASC,
    event_prefix="visit-slot",
)

NON_ASSOCIATIONS: Final = MappingKind(
    name="non-associations",
    table_name="non_association_mapping",
    primary=KeyColumn("non_association_id", int),
    secondary=(
        KeyColumn("first_offender_no"),
        KeyColumn("second_offender_no"),
        KeyColumn("nomis_type_sequence", int),
    ),
    event_prefix="nonAssociation",
)

KINDS: Final[Mapping[str, MappingKind]] = _catalogue(
    (
        INCIDENTS,
        CSRAS,
        ADJUDICATIONS,
        INCENTIVES,
        COURT_CASES,
        CSIP_REPORTS,
        TRANSACTIONS,
        CORPORATES,
        VISIT_SLOTS,
        NON_ASSOCIATIONS,
    )
)


def get_kind(name: str) -> MappingKind:
    try:
        return KINDS[name]
    except KeyError:
        raise UnknownMappingKindError(name, known=tuple(KINDS)) from None
