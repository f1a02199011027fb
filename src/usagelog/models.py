from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Period:
    """
    Period is a reporting window in epoch milliseconds.

    The type does not enforce beginning <= ending: a truncated
    interval for an entity seen only once can be degenerate.
    Reporting periods are validated by the facade instead.
    """

    beginning_ms: "int"
    ending_ms: "int"

    @property
    def duration_ms(self) -> "int":
        return self.ending_ms - self.beginning_ms


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Snapshot is one sample of the cumulative usage
    counters of a single entity.
    """

    identity: "str"
    timestamp_ms: "int"
    # counters only ever grow while the entity is alive
    cumulative_disk_io_megs: "int"
    cumulative_network_io_megs: "int"


@dataclass(frozen=True, slots=True)
class EntityAttributes:
    """
    EntityAttributes describes the resource a series
    of snapshots belongs to.
    """

    identity: "str"
    # e.g. the instance type, used for per-type elapsed seconds
    entity_type: "str"
    owner_id: "str"
    account_id: "str"
    cluster_name: "str"
    availability_zone: "str"


@dataclass(frozen=True, slots=True, order=True)
class SummaryKey:
    """
    SummaryKey groups entities that share the same
    descriptive dimensions into one report row.
    """

    owner_id: "str"
    account_id: "str"
    cluster_name: "str"
    availability_zone: "str"

    @classmethod
    def from_attributes(cls, attrs: "EntityAttributes") -> "SummaryKey":
        return cls(
            owner_id=attrs.owner_id,
            account_id=attrs.account_id,
            cluster_name=attrs.cluster_name,
            availability_zone=attrs.availability_zone,
        )


@dataclass(slots=True)
class UsageSummary:
    """
    UsageSummary holds the running totals of one report row.
    """

    disk_io_megs: "int" = 0
    network_io_megs: "int" = 0
    # entity type -> elapsed seconds within the period
    type_seconds: "dict[str, int]" = field(default_factory=dict)

    def add_disk_io_megs(self, megs: "int") -> "None":
        self.disk_io_megs += megs

    def add_network_io_megs(self, megs: "int") -> "None":
        self.network_io_megs += megs

    def add_type_seconds(self, entity_type: "str", seconds: "int") -> "None":
        self.type_seconds[entity_type] = self.type_seconds.get(entity_type, 0) + seconds


@dataclass(frozen=True, slots=True)
class PurgeResult:
    """
    PurgeResult reports how many rows a retention purge removed.
    """

    cutoff_ms: "int"
    snapshots_deleted: "int"
    attributes_deleted: "int"
