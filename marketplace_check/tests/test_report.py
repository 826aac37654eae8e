"""Tests for reports and exit-code calculation."""

from __future__ import annotations

from marketplace_check.report import BatchResult, Report, calculate_exit_code


class TestReport:
    """Tests for Report."""

    def test_extend_keeps_order(self) -> None:
        first = Report(errors=["e1"], warnings=["w1"])
        second = Report(errors=["e2"], info=["i1"])
        first.extend(second)
        assert first.errors == ["e1", "e2"]
        assert first.warnings == ["w1"]
        assert first.info == ["i1"]

    def test_warnings_fail_only_in_strict_mode(self) -> None:
        report = Report(warnings=["w"])
        assert report.ok
        assert not report.failed()
        assert report.failed(strict=True)

    def test_info_never_fails(self) -> None:
        report = Report(info=["i"])
        assert not report.failed(strict=True)


class TestCalculateExitCode:
    """Tests for calculate_exit_code."""

    def test_clean(self) -> None:
        assert calculate_exit_code([Report(), Report(info=["x"])]) == (0, 0, 0, 1)

    def test_errors(self) -> None:
        reports = [Report(errors=["a"]), Report(errors=["b"], warnings=["c"])]
        assert calculate_exit_code(reports) == (1, 2, 1, 0)

    def test_warnings_normal_mode(self) -> None:
        assert calculate_exit_code([Report(warnings=["w"])])[0] == 0

    def test_warnings_strict_mode(self) -> None:
        assert calculate_exit_code([Report(warnings=["w"])], strict=True)[0] == 1


class TestBatchResult:
    """Tests for BatchResult."""

    def test_all_reports_registry_first(self) -> None:
        result = BatchResult()
        result.plugins["a"] = Report(errors=["x"])
        assert result.all_reports()[0] is result.registry
        assert not result.passed("a")
