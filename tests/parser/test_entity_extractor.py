"""
Unit tests for EntityExtractor.

Parses real TypeScript and JavaScript snippets with tree-sitter and checks
the imports, exports, classes, functions and variables reported for them.
"""

import pytest

from graph_extractor.parser import (
    EntityExtractor,
    ImportKind,
    ParseError,
    UnsupportedLanguageError,
    Visibility,
)


@pytest.fixture
def extractor() -> EntityExtractor:
    return EntityExtractor(resolve_types=True)


@pytest.fixture
def syntactic_extractor() -> EntityExtractor:
    return EntityExtractor(resolve_types=False)


class TestImports:
    """Tests for import statement extraction."""

    def test_each_binding_form_is_a_separate_entry(self, extractor):
        source = (
            "import React, { useState, useEffect as effect } from 'react';\n"
            "import * as path from 'path';\n"
            "import './polyfills';\n"
        )
        record = extractor.extract(source, "/repo/src/app.ts")

        assert [(i.name, i.kind) for i in record.imports] == [
            ("React", ImportKind.default),
            ("useState", ImportKind.named),
            ("useEffect", ImportKind.named),
            ("*", ImportKind.namespace),
            ("./polyfills", ImportKind.side_effect),
        ]

    def test_named_import_keeps_alias_and_path(self, extractor):
        record = extractor.extract(
            "import { useEffect as effect } from './hooks';\n", "/repo/src/app.ts"
        )

        (imp,) = record.imports
        assert imp.name == "useEffect"
        assert imp.alias == "effect"
        assert imp.local_name == "effect"
        assert imp.path == "./hooks"
        assert imp.is_default is False
        assert imp.is_relative is True

    def test_namespace_import_records_local_alias(self, extractor):
        record = extractor.extract("import * as utils from '../utils';\n", "/repo/src/app.ts")

        (imp,) = record.imports
        assert imp.name == "*"
        assert imp.alias == "utils"
        assert imp.is_relative is True

    def test_package_import_is_not_relative(self, extractor):
        record = extractor.extract("import express from 'express';\n", "/repo/src/app.js")

        (imp,) = record.imports
        assert imp.is_default is True
        assert imp.is_relative is False

    def test_import_range_covers_statement(self, extractor):
        source = "import { a } from './a';\n"
        record = extractor.extract(source, "/repo/src/app.ts")

        start, end = record.imports[0].range
        assert source[start:end].startswith("import { a } from './a'")


class TestExports:
    """Tests for export detection."""

    def test_exported_declarations(self, extractor):
        source = (
            "export function a() {}\n"
            "export class B {}\n"
            "export const c = 1, d = 2;\n"
            "export interface E {}\n"
        )
        record = extractor.extract(source, "/repo/src/mod.ts")

        assert [e.name for e in record.exports] == ["a", "B", "c", "d", "E"]
        assert record.functions[0].is_exported is True
        assert record.classes[0].is_exported is True
        assert all(v.is_exported for v in record.variables)

    def test_export_clause_marks_local_declarations(self, extractor):
        source = (
            "function internal() {}\n"
            "function shared() {}\n"
            "export { shared as publicName };\n"
        )
        record = extractor.extract(source, "/repo/src/mod.ts")

        exported = {f.name: f.is_exported for f in record.functions}
        assert exported == {"internal": False, "shared": True}
        (export,) = record.exports
        assert export.name == "publicName"
        assert export.local_name == "shared"

    def test_default_export_of_identifier(self, extractor):
        source = "class Service {}\nexport default Service;\n"
        record = extractor.extract(source, "/repo/src/service.ts")

        (export,) = record.exports
        assert export.is_default is True
        assert export.local_name == "Service"
        assert record.classes[0].is_exported is True

    def test_default_export_of_named_function(self, extractor):
        record = extractor.extract(
            "export default function main() {}\n", "/repo/src/main.ts"
        )

        assert record.functions[0].name == "main"
        assert record.functions[0].is_exported is True
        assert record.exports[0].is_default is True

    def test_anonymous_default_class(self, extractor):
        record = extractor.extract(
            "class Base {}\nexport default class extends Base {\n  run() {}\n}\n",
            "/repo/src/runner.ts",
        )

        runner = next(c for c in record.classes if c.name == "default")
        assert runner.super_class == "Base"
        assert [m.name for m in runner.methods] == ["run"]
        assert runner.is_exported is True
        (export,) = record.exports
        assert (export.name, export.is_default, export.local_name) == ("default", True, "default")

    def test_anonymous_default_function(self, extractor):
        record = extractor.extract(
            "export default function (input: string) {\n  return input.length;\n}\n",
            "/repo/src/measure.ts",
        )

        (function,) = record.functions
        assert function.name == "default"
        assert function.is_exported is True
        assert [p.name for p in function.parameters] == ["input"]
        assert record.exports[0].local_name == "default"

    def test_reexport_everything(self, extractor):
        record = extractor.extract("export * from './models';\n", "/repo/src/index.ts")

        (export,) = record.exports
        assert export.name == "*"
        assert export.source == "./models"


class TestClasses:
    """Tests for class, method and field extraction."""

    SOURCE = (
        "export class UserService extends BaseService implements Service, Disposable {\n"
        "  private readonly repo: UserRepository;\n"
        "  static instances = 0;\n"
        "  constructor(repo: UserRepository) { super(); this.repo = repo; }\n"
        "  public async findUser(id: string): Promise<User> { return this.repo.find(id); }\n"
        "  protected static create(): UserService { return new UserService(null); }\n"
        "  #secret() {}\n"
        "}\n"
    )

    def test_heritage_is_split(self, extractor):
        record = extractor.extract(self.SOURCE, "/repo/src/user.service.ts")

        (cls,) = record.classes
        assert cls.name == "UserService"
        assert cls.super_class == "BaseService"
        assert cls.interfaces == ["Service", "Disposable"]
        assert cls.is_exported is True

    def test_method_modifiers(self, extractor):
        record = extractor.extract(self.SOURCE, "/repo/src/user.service.ts")

        methods = {m.name: m for m in record.classes[0].methods}
        assert set(methods) == {"constructor", "findUser", "create", "#secret"}

        find_user = methods["findUser"]
        assert find_user.is_async is True
        assert find_user.is_static is False
        assert find_user.visibility == Visibility.public
        assert find_user.return_type == "Promise<User>"
        assert [(p.name, p.type) for p in find_user.parameters] == [("id", "string")]

        create = methods["create"]
        assert create.is_static is True
        assert create.visibility == Visibility.protected

        assert methods["#secret"].visibility == Visibility.private

    def test_fields(self, extractor):
        record = extractor.extract(self.SOURCE, "/repo/src/user.service.ts")

        fields = {p.name: p for p in record.classes[0].properties}
        assert fields["repo"].visibility == Visibility.private
        assert fields["repo"].type == "UserRepository"
        assert fields["instances"].is_static is True
        assert fields["instances"].type == "number"

    def test_abstract_class(self, extractor):
        source = "abstract class Shape {\n  abstract area(): number;\n}\n"
        record = extractor.extract(source, "/repo/src/shape.ts")

        (cls,) = record.classes
        assert cls.is_abstract is True
        assert [m.name for m in cls.methods] == ["area"]
        assert cls.methods[0].return_type == "number"

    def test_javascript_class_heritage(self, extractor):
        source = "class Dog extends Animal {\n  bark() { return 'woof'; }\n}\n"
        record = extractor.extract(source, "/repo/src/dog.js")

        (cls,) = record.classes
        assert cls.super_class == "Animal"
        assert cls.interfaces == []
        assert [m.name for m in cls.methods] == ["bark"]


class TestFunctionsAndVariables:
    """Tests for function, parameter and variable extraction."""

    def test_async_exported_function(self, extractor):
        record = extractor.extract(
            "export async function foo(bar: number): Promise<string> {\n"
            "  return String(bar);\n"
            "}\n",
            "/repo/src/foo.ts",
        )

        (function,) = record.functions
        assert function.name == "foo"
        assert function.is_async is True
        assert function.is_exported is True
        assert function.return_type == "Promise<string>"
        assert function.parameters[0].name == "bar"
        assert function.parameters[0].type == "number"

    def test_parameter_shapes(self, extractor):
        record = extractor.extract(
            "function f(a: string, b?: number, c = 3, ...rest: string[]) {}\n",
            "/repo/src/f.ts",
        )

        a, b, c, rest = record.functions[0].parameters
        assert (a.name, a.is_optional, a.is_rest) == ("a", False, False)
        assert (b.name, b.is_optional) == ("b", True)
        assert (c.name, c.default_value, c.is_optional, c.type) == ("c", "3", True, "number")
        assert (rest.name, rest.is_rest, rest.type) == ("rest", True, "string[]")

    def test_javascript_parameters(self, extractor):
        record = extractor.extract("function g(x, y = 'a', ...zs) {}\n", "/repo/src/g.js")

        x, y, zs = record.functions[0].parameters
        assert x.name == "x" and x.type is None
        assert y.default_value == "'a'" and y.is_optional is True
        assert zs.name == "zs" and zs.is_rest is True

    def test_const_and_let(self, extractor):
        record = extractor.extract(
            "const answer = 42;\nlet counter = 0;\nvar legacy: string = 'x';\n",
            "/repo/src/vars.ts",
        )

        variables = {v.name: v for v in record.variables}
        assert variables["answer"].is_const is True
        assert variables["answer"].type == "42"
        assert variables["counter"].is_const is False
        assert variables["counter"].type == "number"
        assert variables["legacy"].type == "string"

    def test_destructuring_binds_every_name(self, extractor):
        record = extractor.extract(
            "const { a, b: renamed, ...others } = load();\nconst [first, second] = pair;\n",
            "/repo/src/destructure.js",
        )

        assert [v.name for v in record.variables] == ["a", "renamed", "others", "first", "second"]

    def test_declarations_inside_bodies_are_ignored(self, extractor):
        source = (
            "function outer() {\n"
            "  function inner() {}\n"
            "  const local = 1;\n"
            "}\n"
            "const handler = () => { const hidden = 2; };\n"
            "class C { method() { const alsoHidden = 3; } }\n"
        )
        record = extractor.extract(source, "/repo/src/nested.ts")

        assert [f.name for f in record.functions] == ["outer"]
        assert [v.name for v in record.variables] == ["handler"]
        assert [c.name for c in record.classes] == ["C"]

    def test_declarations_in_top_level_blocks_are_found(self, extractor):
        source = "if (process.env.DEBUG) {\n  function debug() {}\n}\n"
        record = extractor.extract(source, "/repo/src/debug.js")

        assert [f.name for f in record.functions] == ["debug"]

    def test_long_top_level_expression_does_not_exhaust_depth(self, extractor):
        chain = " + ".join(["1"] * 600)
        source = f"let x = 0;\nx = {chain};\nexport function kept() {{}}\n"

        record = extractor.extract(source, "/repo/src/long.ts")

        assert [f.name for f in record.functions] == ["kept"]
        assert [v.name for v in record.variables] == ["x"]


class TestTypeResolution:
    """Tests for resolved versus syntactic types."""

    def test_unannotated_return_type_is_inferred(self, extractor):
        record = extractor.extract(
            "export async function load() {\n  return 'done';\n}\n"
            "function nothing() {}\n",
            "/repo/src/load.ts",
        )

        types = {f.name: f.return_type for f in record.functions}
        assert types == {"load": "Promise<string>", "nothing": "void"}

    def test_new_expression_type(self, extractor):
        record = extractor.extract("const cache = new Map<string, number>();\n", "/repo/src/c.ts")

        assert record.variables[0].type == "Map<string, number>"

    def test_syntactic_mode_reports_annotations_only(self, syntactic_extractor):
        record = syntactic_extractor.extract(
            "const answer = 42;\nfunction f(): boolean { return true; }\nfunction g() { return 1; }\n",
            "/repo/src/plain.ts",
        )

        assert record.variables[0].type is None
        types = {f.name: f.return_type for f in record.functions}
        assert types == {"f": "boolean", "g": None}


class TestFailures:
    """Tests for parse failures and unsupported files."""

    def test_syntax_error_raises_parse_error(self, extractor):
        with pytest.raises(ParseError) as exc_info:
            extractor.extract("export function (((\n", "/repo/src/broken.ts")

        assert exc_info.value.language == "typescript"
        assert exc_info.value.file_path == "/repo/src/broken.ts"
        assert "Syntax error" in str(exc_info.value)

    def test_unsupported_extension(self, extractor):
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            extractor.extract("print('hi')\n", "/repo/tool.py")

        assert exc_info.value.extension == ".py"

    def test_missing_file_raises_parse_error(self, extractor, tmp_path):
        with pytest.raises(ParseError):
            extractor.extract_file(tmp_path / "missing.ts")

    def test_extract_file_reads_from_disk(self, extractor, tmp_path):
        source_file = tmp_path / "disk.ts"
        source_file.write_text("export const fromDisk = true;\n", encoding="utf-8")

        record = extractor.extract_file(source_file)

        assert record.variables[0].name == "fromDisk"
        assert record.variables[0].type == "true"
        assert record.language == "typescript"
