"""Tests for skeleton extraction, validation and repair."""

from react_modifier.utils.structure_validator import (
    extract_file_structure,
    extract_import_path,
    preserves_skeleton,
    repair_file_structure,
    validate_structure_preservation,
    validate_syntax,
)

from conftest import APP_TSX, HEADER_TSX


NAV_TSX = """import React from "react";
import {
  Link,
  useLocation,
} from "react-router-dom";

const Nav = () => {
  const location = useLocation();
  return <Link to="/">{location.pathname}</Link>;
};

export default Nav;
"""
MULTILINE_IMPORT = """import {
  Link,
  useLocation,
} from "react-router-dom";"""


class TestExtractFileStructure:
    def test_imports_and_exports_in_order(self):
        structure = extract_file_structure(APP_TSX)
        assert structure.imports == [
            'import { BrowserRouter, Routes, Route } from "react-router-dom";',
            'import Header from "./components/Header";',
            'import Home from "./pages/Home";',
        ]
        assert structure.exports == ["export default App;"]
        assert structure.component_name == "App"
        assert structure.has_default_export is True

    def test_preservation_prompt_lists_skeleton(self):
        structure = extract_file_structure(HEADER_TSX)
        assert 'import { Link } from "react-router-dom";' in structure.preservation_prompt
        assert "Keep the component name: Header" in structure.preservation_prompt

    def test_hooks_collected(self):
        content = "const A = () => {\n  const [x] = useState(0);\n  useEffect(() => {}, []);\n};\n"
        assert extract_file_structure(content).hooks == ["useState", "useEffect"]

    def test_multiline_import_is_one_statement(self):
        structure = extract_file_structure(NAV_TSX)
        assert structure.imports == ['import React from "react";', MULTILINE_IMPORT]
        assert structure.file_header == 'import React from "react";\n' + MULTILINE_IMPORT + "\n\n"
        assert structure.component_name == "Nav"

    def test_unterminated_import_stays_single_line(self):
        content = "import {\nconst a = 1;\nimport b from './b';\n"
        assert extract_file_structure(content).imports == ["import {", "import b from './b';"]


def test_extract_import_path():
    assert extract_import_path("import a from './a';") == "./a"
    assert extract_import_path("import './styles.css';") == "./styles.css"
    assert extract_import_path("const a = 1;") is None


class TestValidateStructurePreservation:
    def test_identical_content_is_valid(self):
        original = extract_file_structure(HEADER_TSX)
        result = validate_structure_preservation(HEADER_TSX, original)
        assert result.is_valid
        assert result.score == 100

    def test_missing_import_is_error(self):
        original = extract_file_structure(HEADER_TSX)
        rewritten = HEADER_TSX.replace('import { Link } from "react-router-dom";\n', "")
        result = validate_structure_preservation(rewritten, original)
        assert not result.is_valid
        assert any("Missing import" in error for error in result.errors)

    def test_modified_import_with_same_path_is_warning(self):
        original = extract_file_structure(HEADER_TSX)
        rewritten = HEADER_TSX.replace(
            'import { Link } from "react-router-dom";',
            'import { Link, NavLink } from "react-router-dom";',
        )
        result = validate_structure_preservation(rewritten, original)
        assert result.is_valid
        assert result.warnings

    def test_missing_default_export_is_error(self):
        original = extract_file_structure(HEADER_TSX)
        rewritten = HEADER_TSX.replace("export default Header;", "")
        result = validate_structure_preservation(rewritten, original)
        assert not result.is_valid
        assert "Default export statement missing" in result.errors

    def test_dropped_multiline_import_is_error(self):
        original = extract_file_structure(NAV_TSX)
        rewritten = NAV_TSX.replace(MULTILINE_IMPORT + "\n", "")
        result = validate_structure_preservation(rewritten, original)
        assert not result.is_valid
        assert "Missing import: " + MULTILINE_IMPORT in result.errors
        assert not preserves_skeleton(rewritten, original)


class TestRepair:
    def test_dropped_import_is_restored(self):
        original = extract_file_structure(HEADER_TSX)
        broken = HEADER_TSX.replace('import { Link } from "react-router-dom";\n', "")
        repaired = repair_file_structure(broken, original)
        assert repaired is not None
        assert preserves_skeleton(repaired, original)

    def test_added_binding_is_kept_on_second_import(self):
        original = extract_file_structure(HEADER_TSX)
        broken = HEADER_TSX.replace(
            'import { Link } from "react-router-dom";',
            'import { Link, NavLink } from "react-router-dom";',
        )
        repaired = repair_file_structure(broken, original)
        assert repaired is not None
        assert 'import { Link } from "react-router-dom";' in repaired
        assert "import { NavLink } from" in repaired

    def test_bare_body_gets_skeleton_back(self):
        original = extract_file_structure(HEADER_TSX)
        repaired = repair_file_structure("<div>nothing</div>", original)
        assert repaired is not None
        assert repaired.startswith('import { Link } from "react-router-dom";')
        assert repaired.rstrip().endswith("export default Header;")

    def test_dropped_multiline_import_is_restored(self):
        original = extract_file_structure(NAV_TSX)
        broken = NAV_TSX.replace(MULTILINE_IMPORT + "\n", "")
        repaired = repair_file_structure(broken, original)
        assert repaired is not None
        assert repaired.startswith('import React from "react";\n' + MULTILINE_IMPORT + "\n\nconst Nav")
        assert preserves_skeleton(repaired, original)

    def test_multiline_import_continuations_leave_the_body(self):
        original = extract_file_structure(NAV_TSX)
        broken = NAV_TSX.replace("  Link,\n", "  Link,\n  NavLink,\n")
        repaired = repair_file_structure(broken, original)
        assert repaired is not None
        assert MULTILINE_IMPORT in repaired
        assert 'import { NavLink } from "react-router-dom";' in repaired
        assert "  NavLink," not in repaired
        assert repaired.count("  useLocation,") == 1


class TestValidateSyntax:
    def test_balanced(self):
        assert validate_syntax(APP_TSX).is_valid

    def test_unbalanced(self):
        result = validate_syntax("const a = () => { return (1;")
        assert not result.is_valid
        assert "Unmatched brackets in file" in result.errors
