"""Nox sessions for the CloudCost action: tests, static checks, packaging and a sample render."""

import nox

PYTHON_VERSIONS = ["3.11"]

PACKAGE_DIR = "cloudcostgh"
SRC_DIR = "src"


@nox.session(python=PYTHON_VERSIONS)
def tests(session):
    """Run the test suite with coverage."""
    session.install(".[test]")

    session.run(
        "pytest",
        "--cov=" + PACKAGE_DIR,
        "--cov=costdelta",
        "--cov=costaction",
        "--cov-report=term-missing",
        "--cov-fail-under=80",
        *session.posargs,
    )


@nox.session(python=PYTHON_VERSIONS)
def lint(session):
    """Run linting with ruff."""
    session.install("ruff")
    session.run("ruff", "check", ".")


@nox.session(python=PYTHON_VERSIONS)
def format(session):
    """Format code with black and ruff."""
    session.install("black", "ruff")
    session.run("black", ".")
    session.run("ruff", "check", "--fix", ".")


@nox.session(python=PYTHON_VERSIONS)
def typecheck(session):
    """Run type checking with mypy."""
    session.install(".")
    session.install("mypy", "types-PyYAML")
    session.run("mypy", PACKAGE_DIR, SRC_DIR)


@nox.session(python=PYTHON_VERSIONS)
def security(session):
    """Run security checks."""
    session.install("bandit[toml]")
    session.run("bandit", "-c", "pyproject.toml", "-r", PACKAGE_DIR, SRC_DIR)


@nox.session(python=PYTHON_VERSIONS)
def package(session):
    """Build the package."""
    session.install("build")
    session.run("python", "-m", "build")


@nox.session(python=PYTHON_VERSIONS)
def sample(session):
    """Render a comment from synthetic base/head reports."""
    session.install(".")
    session.run("python", "data/generate_reports.py", "--seed", "42", "--output-dir", "build/sample")
    session.run("cloudcost-delta", "build/sample/base_report.json", "build/sample/head_report.json")


@nox.session
def clean(session):
    """Remove coverage data, tool caches, sample reports and build output."""
    import shutil
    from pathlib import Path

    root = Path(".")
    names = (".coverage", ".pytest_cache", ".mypy_cache", ".ruff_cache", "build", "dist")
    targets = [root / name for name in names]
    targets += list(root.glob("**/*.egg-info")) + list(root.glob("**/__pycache__"))

    for path in targets:
        if path.is_dir():
            session.log(f"Removing {path}/")
            shutil.rmtree(path)
        elif path.exists():
            session.log(f"Removing {path}")
            path.unlink()


# Default session when running `nox` without arguments
nox.options.sessions = ["tests", "lint", "typecheck"]
