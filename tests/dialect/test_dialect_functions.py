"""
Tests for the function template engine.
"""

from datetime import date, datetime

import pytest

from sqlbridge.dialect import Capability, substitute
from sqlbridge.exceptions import UnsupportedCapabilityError


class TestSubstitute:
    """Test cases for placeholder substitution."""

    def test_all_provided_tokens_replaced(self):
        result = substitute("DATE_DIFF('@unit', @start_exp, @end_exp)", unit="day", start_exp="a", end_exp="b")
        assert result == "DATE_DIFF('day', a, b)"
        assert "@" not in result

    def test_unmatched_placeholders_left_verbatim(self):
        result = substitute("COALESCE(@exp, @when_null)", exp="x")
        assert result == "COALESCE(x, @when_null)"

    def test_names_match_case_insensitively(self):
        assert substitute("TRIM(@EXP)", exp="name") == "TRIM(name)"
        assert substitute("TRIM(@exp)", EXP="name") == "TRIM(name)"

    def test_longer_names_not_clobbered_by_prefixes(self):
        result = substitute("@exp @exp_extra @start_exp", exp="E", start_exp="S")
        assert result == "E @exp_extra S"

    def test_values_are_not_rescanned(self):
        result = substitute("CAST(@exp AS @type)", exp="@type", type="DATE")
        assert result == "CAST(@type AS DATE)"

    def test_order_independent(self):
        template = "DATE_ADD('@unit', @val, @exp)"
        first = substitute(template, unit="day", val=1, exp="d")
        second = substitute(template, exp="d", val=1, unit="day")
        assert first == second == "DATE_ADD('day', 1, d)"


class TestStringFunctions:
    """Test cases for quoting, literals and simple wrappers."""

    def test_quote(self, make_dialect):
        assert make_dialect("duckdb").quote("order id") == '"order id"'

    def test_string_literal_doubles_quotes(self, make_dialect):
        assert make_dialect("postgres").string_lit("O'Brien") == "'O''Brien'"

    def test_trim_and_case(self, make_dialect):
        druid = make_dialect("druid")
        assert druid.trim("name") == "trim(name)"
        assert druid.lower_case("name") == "lower(name)"
        assert druid.upper_case("name") == "upper(name)"

    def test_cast(self, make_dialect):
        assert make_dialect("base").cast("x", "INTEGER") == "CAST(x AS INTEGER)"
        assert make_dialect("postgres").cast("x", "INTEGER") == "x::INTEGER"

    def test_null_functions(self, make_dialect):
        snowflake = make_dialect("snowflake")
        assert snowflake.if_null("a", 0) == "NVL(a, 0)"
        assert snowflake.null_if("a", "b") == "NULLIF(a, b)"
        assert snowflake.null_if_zero("a") == "NULLIFZERO(a)"


class TestDateTruncation:
    """Test cases for truncate_date."""

    def test_coarse_units_cast_to_date(self, make_dialect):
        result = make_dialect("base").truncate_date("Month", "d")
        assert result == "CAST(DATE_TRUNC('month', d) AS DATE)"

    @pytest.mark.parametrize("unit", ["millisecond", "second", "minute", "hour"])
    def test_fine_units_not_cast(self, make_dialect, unit):
        result = make_dialect("base").truncate_date(unit, "ts")
        assert result == f"DATE_TRUNC('{unit}', ts)"

    def test_week_uses_generic_template_when_start_day_is_native(self, make_dialect):
        result = make_dialect("duckdb").truncate_date("week", "d")
        assert result == "CAST(DATE_TRUNC('week', d) AS DATE)"

    def test_week_uses_start_day_template_when_different(self, make_dialect):
        result = make_dialect("duckdb", week_start_day="sunday").truncate_date("week", "d")
        assert result == "CAST((DATE_TRUNC('week', d + INTERVAL 1 DAY) - INTERVAL 1 DAY) AS DATE)"

    def test_druid_configured_for_sunday(self, make_dialect):
        druid = make_dialect("druid")
        assert druid.week_starts_on_sunday()
        assert "1970-01-04" in druid.truncate_date("week", "__time")

    def test_monday_and_sunday_weeks_differ_by_one_day(self, make_dialect, duckdb_adapter):
        monday = make_dialect("duckdb", week_start_day="monday")
        sunday = make_dialect("duckdb", week_start_day="sunday")
        day = monday.date_literal(date(2024, 1, 10))  # a Wednesday

        rows = duckdb_adapter.execute(
            f"SELECT {monday.truncate_date('week', day)}, {sunday.truncate_date('week', day)}"
        )

        monday_start, sunday_start = rows[0]
        assert monday_start == date(2024, 1, 8)
        assert sunday_start == date(2024, 1, 7)
        assert (monday_start - sunday_start).days == 1


class TestDateArithmetic:
    """Test cases for date_add, date_diff and date formatting."""

    def test_date_add(self, make_dialect):
        assert make_dialect("snowflake").date_add("day", 7, "d") == "DATEADD(day, 7, d)"

    @pytest.mark.parametrize("engine", ["postgres", "redshift"])
    def test_quarter_rewritten_as_three_months(self, make_dialect, engine):
        dialect = make_dialect(engine)
        assert dialect.date_add("quarter", 1, "d") == dialect.date_add("month", 3, "d")
        assert dialect.date_add("quarter", -2, "d") == dialect.date_add("month", -6, "d")

    def test_quarter_rewrite_with_expression_offset(self, make_dialect):
        result = make_dialect("redshift").date_add("quarter", "n", "d")
        assert result == "DATEADD(month, (n) * 3, d)"

    def test_native_quarter_kept(self, make_dialect):
        assert make_dialect("snowflake").date_add("quarter", 1, "d") == "DATEADD(quarter, 1, d)"

    def test_quarter_add_matches_month_add_on_duckdb(self, make_dialect, duckdb_adapter):
        dialect = make_dialect("duckdb", native_quarter_interval=False)
        day = dialect.date_literal("2024-01-31")
        rows = duckdb_adapter.execute(
            f"SELECT {dialect.date_add('quarter', 1, day)}, {dialect.date_add('month', 3, day)}"
        )
        assert rows[0][0] == rows[0][1]

    def test_date_diff(self, make_dialect):
        result = make_dialect("druid").date_diff("DAY", "a", "b")
        assert result == "TIMESTAMPDIFF(day, a, b)"

    def test_date_format_sql(self, make_dialect):
        assert make_dialect("postgres").date_format_sql("d", "YYYY") == "TO_CHAR(d, 'YYYY')"


class TestLiterals:
    """Test cases for date and timestamp literals."""

    def test_string_literal_passed_through(self, make_dialect):
        assert make_dialect("postgres").date_literal("2025-08-06") == "'2025-08-06'::DATE"

    def test_date_formatted_with_engine_pattern(self, make_dialect):
        dialect = make_dialect("duckdb", date_format="%Y/%m/%d")
        assert dialect.date_literal(date(2025, 8, 6)) == "DATE '2025/08/06'"

    def test_datetime_literal(self, make_dialect):
        result = make_dialect("base").date_time_literal(datetime(2025, 8, 6, 13, 5, 9))
        assert result == "TIMESTAMP '2025-08-06 13:05:09'"

    def test_aliases(self, make_dialect):
        dialect = make_dialect("base")
        assert dialect.date_lit("2025-01-01") == dialect.date_literal("2025-01-01")
        assert dialect.timestamp_lit("2025-01-01 00:00:00") == dialect.date_time_literal("2025-01-01 00:00:00")

    def test_current_date_constants(self, make_dialect):
        assert make_dialect("snowflake").current_date == "CURRENT_DATE()"
        assert make_dialect("base").current_timestamp == "CURRENT_TIMESTAMP"


class TestExtraction:
    """Test cases for date part and name extraction."""

    def test_extract_parts(self, make_dialect):
        postgres = make_dialect("postgres")
        assert postgres.extract_year("d") == "EXTRACT(YEAR FROM d)"
        assert postgres.extract_day_of_week("d") == "EXTRACT(DOW FROM d)"
        assert postgres.extract_year_month("d") == "TO_CHAR(d, 'YYYYMM')::INTEGER"

    def test_name_extraction_upper_cased_when_configured(self, make_dialect):
        postgres = make_dialect("postgres")
        assert postgres.extract_day_name("d") == "UPPER(TO_CHAR(d, 'FMDay'))"
        assert postgres.extract_month_name("d", abbreviate=True) == "UPPER(TO_CHAR(d, 'Mon'))"

    def test_name_extraction_without_upper_casing(self, make_dialect):
        duckdb = make_dialect("duckdb")
        assert duckdb.extract_day_name("d") == "STRFTIME(d, '%A')"
        assert duckdb.extract_month_name("d") == "STRFTIME(d, '%B')"

    def test_duckdb_extraction_runs(self, make_dialect, duckdb_adapter):
        dialect = make_dialect("duckdb", upper_case_names=True)
        day = dialect.date_literal("2024-03-15")
        rows = duckdb_adapter.execute(
            f"SELECT {dialect.extract_day_name(day)}, {dialect.extract_year_month(day)}, "
            f"{dialect.extract_quarter(day)}"
        )
        assert rows == [("FRIDAY", 202403, 1)]


class TestCapabilityGating:
    """Gated functions fail instead of producing SQL the engine cannot run."""

    def test_array_functions_on_supporting_engine(self, make_dialect):
        postgres = make_dialect("postgres")
        assert postgres.array_in_list("tags", "'a','b'") == "tags && ARRAY['a','b']"
        assert postgres.array_exclude_list("tags", "'a'") == "NOT (tags && ARRAY['a'])"
        assert postgres.array_unnest_join("tags", "t") == "CROSS JOIN UNNEST(tags) t"

    @pytest.mark.parametrize("call", [
        lambda d: d.array_in_list("tags", "'a'"),
        lambda d: d.array_exclude_list("tags", "'a'"),
        lambda d: d.array_unnest_join("tags", "t"),
    ])
    def test_array_functions_rejected_without_capability(self, make_dialect, call):
        redshift = make_dialect("redshift")
        assert not redshift.supports(Capability.ARRAY_FUNCTIONS)
        with pytest.raises(UnsupportedCapabilityError, match="array_functions"):
            call(redshift)

    def test_cross_join(self, make_dialect):
        assert make_dialect("druid").cross_join("dim") == "JOIN dim ON 1=1"
        with pytest.raises(UnsupportedCapabilityError):
            make_dialect("base", supports_cross_join=False).cross_join("dim")

    def test_create_temp_table(self, make_dialect):
        sql = make_dialect("duckdb").create_temp_table("tmp_1", "SELECT 1")
        assert sql == "CREATE TEMPORARY TABLE tmp_1 AS \nSELECT 1"
        with pytest.raises(UnsupportedCapabilityError):
            make_dialect("athena").create_temp_table("tmp_1", "SELECT 1")
