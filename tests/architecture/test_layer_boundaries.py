"""
Layer boundaries between the rental packages.

1. rental_kernel/** may NOT import rental_modules, rental_batch or
   rental_config.  The one exception is create_tables() in
   rental_kernel/db/engine.py, which loads the ORM registry.

2. rental_modules/** may NOT import rental_batch or rental_config.

3. Pure layers (kernel domain, batch domain, module calculations and
   models) import neither SQLAlchemy nor redis.

These tests read source code via AST and never import the packages.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(pattern: str) -> list[Path]:
    return sorted(Path(p) for p in glob.glob(str(ROOT / pattern), recursive=True))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(files: list[Path], prefixes: tuple[str, ...], allowed=frozenset()) -> list[str]:
    found: list[str] = []
    for filepath in files:
        rel = filepath.relative_to(ROOT).as_posix()
        for lineno, module in _extract_imports(filepath):
            for prefix in prefixes:
                if (module == prefix or module.startswith(f"{prefix}.")) and (rel, module) not in allowed:
                    found.append(f"  {rel}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:
    ALLOWED = {("rental_kernel/db/engine.py", "rental_modules._orm_registry")}

    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations(
            _python_files("rental_kernel/**/*.py"),
            ("rental_modules", "rental_batch", "rental_config"),
            self.ALLOWED,
        )
        assert not violations, "rental_kernel imports outer packages:\n" + "\n".join(violations)


class TestModulesBoundary:
    def test_modules_do_not_import_batch_or_config(self):
        violations = _violations(
            _python_files("rental_modules/**/*.py"), ("rental_batch", "rental_config"),
        )
        assert not violations, "rental_modules imports outer packages:\n" + "\n".join(violations)


class TestPureLayers:
    PURE = (
        "rental_kernel/domain/**/*.py",
        "rental_batch/domain/**/*.py",
        "rental_modules/*/calculations.py",
        "rental_modules/*/models.py",
    )

    def test_pure_layers_have_no_io_imports(self):
        files = [f for pattern in self.PURE for f in _python_files(pattern)]
        assert files
        violations = _violations(files, ("sqlalchemy", "redis"))
        assert not violations, "pure layer imports I/O libraries:\n" + "\n".join(violations)
