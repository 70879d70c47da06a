"""
Function template engine.

Every function family maps to one template in the dialect settings. Templates
carry ``@name`` placeholders (``@exp``, ``@unit``, ``@val`` ...) which are
replaced in a single pass, so substituted values are never re-scanned and the
order of substitution does not matter.

Example:
    >>> dialect.truncate_date("week", "order_date")
    Postgres ==> CAST(DATE_TRUNC('week', order_date) AS DATE)
    >>> dialect.date_literal("2025-08-06")
    Postgres ==> '2025-08-06'::DATE
"""

import re
from datetime import date, datetime
from typing import Any

from .capabilities import Capability

PLACEHOLDER_PATTERN = re.compile(r"@([A-Za-z_]+)")

# Truncating to these units keeps a timestamp, everything coarser is a date
TIMESTAMP_UNITS = frozenset({"millisecond", "second", "minute", "hour"})


def substitute(template: str, **values: Any) -> str:
    """
    Replace ``@name`` placeholders with the given values.

    Names match case-insensitively. Placeholders without a value are left
    verbatim.
    """
    lookup = {name.lower(): str(value) for name, value in values.items()}

    def replace(match: re.Match) -> str:
        return lookup.get(match.group(1).lower(), match.group(0))

    return PLACEHOLDER_PATTERN.sub(replace, template)


class Functions:
    """Native SQL function translations, mixed into Dialect."""

    def template(self, key: str) -> str:
        return self._require_settings().require(key)

    def render(self, key: str, **values: Any) -> str:
        return substitute(self.template(key), **values)

    # strings and identifiers

    def cast(self, exp: str, type_name: str) -> str:
        """Cast an expression to a type valid for the target engine."""
        return self.render("cast", exp=exp, type=type_name)

    def trim(self, exp: str) -> str:
        return self.render("trim", exp=exp)

    def lower_case(self, exp: str) -> str:
        return self.render("lower_case", exp=exp)

    def upper_case(self, exp: str) -> str:
        return self.render("upper_case", exp=exp)

    def quote(self, exp: str) -> str:
        """Quote a column name, alias or table name."""
        return self.render("quote", exp=exp)

    def string_lit(self, exp: str) -> str:
        """Render a string literal, doubling embedded single quotes."""
        return self.render("string_literal", exp=str(exp).replace("'", "''"))

    def cross_join(self, relation: str) -> str:
        """
        Cross join against a relation.

        Args:
            relation: Table name or table expression being joined in

        Raises:
            UnsupportedCapabilityError: If the engine cannot cross join
        """
        self.require_capability(Capability.CROSS_JOIN, "cross_join")
        return self.render("cross_join", relation=relation)

    def create_temp_table(self, table: str, sql: str) -> str:
        self.require_capability(Capability.TEMP_TABLES, "create_temp_table")
        return self.render("create_temp_table_template", table=table, sql=sql)

    # dates

    @property
    def date_format(self) -> str:
        return self.template("date_format")

    @property
    def date_time_format(self) -> str:
        return self.template("date_time_format")

    @property
    def date_time_tz_format(self) -> str:
        return self.template("date_time_tz_format")

    @property
    def date_type(self) -> str:
        return self.template("date_type")

    def is_date_int(self) -> bool:
        """Whether the engine stores dates natively as integers."""
        return "int" in str(self.date_type).lower()

    @property
    def current_date(self) -> str:
        return self.template("current_date")

    @property
    def current_time(self) -> str:
        return self.template("current_time")

    @property
    def current_timestamp(self) -> str:
        return self.template("current_timestamp")

    @property
    def default_week_start_day(self) -> str:
        return str(self.template("default_week_start_day")).strip().lower()

    @property
    def week_start_day(self) -> str:
        return str(self.template("week_start_day")).strip().lower()

    def adjust_week_start_day(self) -> bool:
        """Whether the configured week start differs from the engine's own."""
        return self.week_start_day != self.default_week_start_day

    def week_starts_on_sunday(self) -> bool:
        return self.week_start_day == "sunday"

    def truncate_date(self, unit: str, exp: str) -> str:
        """
        Truncate a date expression to the given unit.

        Units coarser than an hour are cast to DATE so the result type does
        not depend on the unit. Literal dates should go through
        date_literal() first.
        """
        unit = unit.strip().lower()
        if unit == "week" and self.adjust_week_start_day():
            result = self.render(f"{self.week_start_day}_week_start_day", exp=exp)
        else:
            result = self.render("truncate_date", unit=unit, exp=exp)

        if unit in TIMESTAMP_UNITS:
            return result
        return self.cast(result, "DATE")

    def date_add(self, unit: str, val: int | str, exp: str) -> str:
        """
        Add an interval to a date expression.

        Engines without a native quarter interval get the equivalent number
        of months instead.
        """
        unit = unit.strip().lower()
        if unit == "quarter" and not self.template("native_quarter_interval"):
            unit = "month"
            val = val * 3 if isinstance(val, int) else f"({val}) * 3"
        return self.render("date_add", unit=unit, val=val, exp=exp)

    def date_diff(self, unit: str, start_exp: str, end_exp: str) -> str:
        return self.render(
            "date_diff", unit=unit.strip().lower(), start_exp=start_exp, end_exp=end_exp
        )

    def date_format_sql(self, exp: str, format: str) -> str:
        """Apply a native format pattern to a date expression."""
        return self.render("date_format_sql", exp=exp, format=format)

    def date_literal(self, val: str | date) -> str:
        if isinstance(val, date):
            val = val.strftime(self.date_format)
        return self.render("date_literal", val=val)

    def date_time_literal(self, val: str | datetime) -> str:
        if isinstance(val, date):
            val = val.strftime(self.date_time_format)
        return self.render("date_time_literal", val=val)

    date_lit = date_literal
    timestamp_lit = date_time_literal

    # date parts

    def extract_year(self, exp: str) -> str:
        return self.render("extract_year", exp=exp)

    def extract_month(self, exp: str) -> str:
        return self.render("extract_month", exp=exp)

    def extract_quarter(self, exp: str) -> str:
        return self.render("extract_quarter", exp=exp)

    def extract_day_of_year(self, exp: str) -> str:
        return self.render("extract_day_of_year", exp=exp)

    def extract_day_of_month(self, exp: str) -> str:
        return self.render("extract_day_of_month", exp=exp)

    def extract_day_of_week(self, exp: str) -> str:
        return self.render("extract_day_of_week", exp=exp)

    def extract_week_of_year(self, exp: str) -> str:
        return self.render("extract_week_of_year", exp=exp)

    def extract_hour(self, exp: str) -> str:
        return self.render("extract_hour", exp=exp)

    def extract_minute(self, exp: str) -> str:
        return self.render("extract_minute", exp=exp)

    def extract_year_month(self, exp: str) -> str:
        return self.render("extract_year_month", exp=exp)

    def extract_day_name(self, exp: str, abbreviate: bool = False) -> str:
        key = "abbreviated_day_name_format" if abbreviate else "day_name_format"
        return self._extract_name(exp, key)

    def extract_month_name(self, exp: str, abbreviate: bool = False) -> str:
        key = "abbreviated_month_name_format" if abbreviate else "month_name_format"
        return self._extract_name(exp, key)

    def _extract_name(self, exp: str, format_key: str) -> str:
        result = self.date_format_sql(exp, self.template(format_key))
        if self.template("upper_case_names"):
            return self.upper_case(result)
        return result

    # nulls

    def if_null(self, exp: Any, when_null: Any) -> str:
        """Return when_null if exp is null."""
        return self.render("if_null", exp=exp, when_null=when_null)

    def null_if(self, exp: Any, target: Any) -> str:
        return self.render("null_if", exp=exp, target=target)

    def null_if_zero(self, exp: Any) -> str:
        return self.render("null_if_zero", exp=exp)

    # arrays

    def array_in_list(self, exp: str, list: str) -> str:
        """
        Test whether any value of a comma separated list is in an array.

        Raises:
            UnsupportedCapabilityError: If the engine has no array functions
        """
        self.require_capability(Capability.ARRAY_FUNCTIONS, "array_in_list")
        return self.render("array_in_list", exp=exp, list=list)

    def array_exclude_list(self, exp: str, list: str) -> str:
        """Negation of array_in_list()."""
        self.require_capability(Capability.ARRAY_FUNCTIONS, "array_exclude_list")
        return self.render("array_exclude_list", exp=exp, list=list)

    def array_unnest_join(self, exp: str, alias: str) -> str:
        """Explode an array column as a joined relation named alias."""
        self.require_capability(Capability.ARRAY_FUNCTIONS, "array_unnest_join")
        return self.render("array_unnest_join", exp=exp, alias=alias)
