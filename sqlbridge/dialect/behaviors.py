"""
Query generation policy flags.

These are read by whatever builds SQL on top of a dialect; nothing in this
package acts on them.
"""

from enum import Enum


class TempTableType(Enum):
    """How intermediate results are materialized."""

    CTE = "cte"
    SUBQUERY = "subquery"
    TEMP = "temp"


class MeasureFilteringStrategy(Enum):
    """Where measure filters of multi-source queries are applied."""

    BOTH = "both"
    FINAL = "final"
    INTERMEDIATE = "intermediate"


class Behaviors:
    """Policy flags, mixed into Dialect."""

    @property
    def temp_table_type(self) -> TempTableType:
        return TempTableType(str(self._require_settings().require("temp_table_type")).lower())

    @property
    def temp_table_prefix(self) -> str:
        return self._require_settings().get("temp_table_prefix") or ""

    def apply_advanced_filtering_on_array_projections(self) -> bool:
        """
        Whether a filtered array projection needs a HAVING re-filter.

        Some engines (Druid) return every element of a projected array even
        when the WHERE clause filtered on it.
        """
        return bool(self._require_settings().require("apply_advanced_filtering_on_array_projections"))

    @property
    def final_pass_measure_join_type(self) -> str:
        """Join type used to merge measures from independent fact sources."""
        return str(self._require_settings().require("final_pass_measure_join_type")).lower()

    def greedy_apply_date_filters(self) -> bool:
        """Push date filters to every joined table rather than only the first one."""
        return bool(self._require_settings().require("greedy_apply_date_filters"))

    def extend_ending_date_to_last_hour_of_day(self) -> bool:
        return bool(self._require_settings().require("extend_ending_date_to_last_hour_of_day"))

    @property
    def cross_universe_measure_filtering_strategy(self) -> MeasureFilteringStrategy:
        value = self._require_settings().require("cross_universe_measure_filtering_strategy")
        return MeasureFilteringStrategy(str(value).lower())

    def intermediate_measure_filter(self) -> bool:
        return self.cross_universe_measure_filtering_strategy in (
            MeasureFilteringStrategy.BOTH,
            MeasureFilteringStrategy.INTERMEDIATE,
        )

    def final_measure_filter(self) -> bool:
        return self.cross_universe_measure_filtering_strategy in (
            MeasureFilteringStrategy.BOTH,
            MeasureFilteringStrategy.FINAL,
        )
