"""Table-driven end-to-end tests: run each program, compare its output.

Expected output is everything the program writes to stdout followed by the
diagnostics it reports, in the order they were written.
"""

import io
from pathlib import Path

import pytest

from plox import run

PROGRAMS_DIR = Path(__file__).parent / "programs"


def parse_spec_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse a .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_specs(test_dir: Path) -> list[tuple[str, str, str]]:
    """Glob *.tests in test_dir, return (test_id, input, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, input_code, expected in parse_spec_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


def pytest_generate_tests(metafunc):
    """Parametrize over every program in the .tests files."""
    if "program_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in discover_specs(PROGRAMS_DIR)
        ]
        metafunc.parametrize("program_input,program_expected", params)


def test_program(program_input: str, program_expected: str):
    out = io.StringIO()
    run(program_input, stdout=out, stderr=out)
    assert out.getvalue().strip() == program_expected


def test_specs_discovered():
    assert len(discover_specs(PROGRAMS_DIR)) > 50
