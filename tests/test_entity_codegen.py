"""
Tests for the entity module code generator.
"""

import ast
from unittest import TestCase

from db_entity_generator.ast_codegen.entities import (
    create_entity_class,
    entity_filename,
    generate_entity_module,
    relative_import_target,
)
from db_entity_generator.domain.models import ObjectKind
from db_entity_generator.generator import EntityGenerator

from schema_factories import column, find, foreign_key, pensioner_tables, shop_tables, table


def annotations_of(class_node: ast.ClassDef):
    return {
        node.target.id: ast.unparse(node.annotation)
        for node in class_node.body
        if isinstance(node, ast.AnnAssign)
    }


def class_of(source: str, name: str) -> ast.ClassDef:
    module = ast.parse(source)
    return next(node for node in module.body if isinstance(node, ast.ClassDef) and node.name == name)


class TestRelativeImportTarget(TestCase):
    """Test cases for relative_import_target function"""

    def test_flat_layout(self):
        assert relative_import_target("user", "public", "public", False) == ("user", 1)
        assert relative_import_target("user", "public", None, False) == ("user", 1)

    def test_from_package_root(self):
        assert relative_import_target("order", "sales", None, True) == ("sales.order", 1)

    def test_same_schema_package(self):
        assert relative_import_target("order", "sales", "sales", True) == ("order", 1)

    def test_other_schema_package(self):
        assert relative_import_target("user", "public", "sales", True) == ("public.user", 2)


class TestEntityFilename(TestCase):
    """Test cases for entity_filename function"""

    def test_flat_and_separated(self):
        generator = EntityGenerator([table("order", schema="sales")])
        entity = generator.compile(find(generator.tables, "order", "sales"))
        assert entity_filename(entity) == "order.py"
        assert entity_filename(entity, separate_by_schema=True) == "sales/order.py"


class TestGenerateEntityModule(TestCase):
    """Test cases for generate_entity_module function"""

    def test_module_parses_and_declares_members(self):
        tables = pensioner_tables()
        generator = EntityGenerator(tables)
        generated = generator.generate_entity(find(tables, "pensioner"), "pension_entities")

        assert generated.filename == "pensioner.py"
        class_node = class_of(generated.content, "Pensioner")
        assert annotations_of(class_node) == {
            "Id": "int",
            "FullName": "str",
            "PhotoFileId": "Optional[int]",
            "SignatureFileId": "Optional[int]",
            "PhotoFile": "Optional[UploadedFile]",
            "SignatureFile": "Optional[UploadedFile]",
        }
        assert ast.get_docstring(class_node) == "Maps the ``public.pensioner`` table."

    def test_module_docstring_and_future_import(self):
        tables = shop_tables()
        generated = EntityGenerator(tables).generate_entity(find(tables, "users"), "shop")
        module = ast.parse(generated.content)
        assert ast.get_docstring(module) == "User entity of the ``shop`` package."
        assert "from __future__ import annotations" in generated.content

    def test_collections_and_type_checking_imports(self):
        tables = pensioner_tables()
        generated = EntityGenerator(tables).generate_entity(find(tables, "uploaded_file"), "pension_entities")
        class_node = class_of(generated.content, "UploadedFile")
        annotations = annotations_of(class_node)
        assert annotations["PensionerPhotoFiles"] == "List[Pensioner]"
        assert annotations["PensionerSignatureFiles"] == "List[Pensioner]"

        module = ast.parse(generated.content)
        guarded = next(node for node in module.body if isinstance(node, ast.If))
        assert ast.unparse(guarded.test) == "TYPE_CHECKING"
        assert ast.unparse(guarded.body[0]) == "from .pensioner import Pensioner"

    def test_scalar_module_imports(self):
        tables = shop_tables()
        generated = EntityGenerator(tables).generate_entity(find(tables, "orders"), "shop")
        assert "import datetime" in generated.content
        assert "import decimal" in generated.content
        annotations = annotations_of(class_of(generated.content, "Order"))
        assert annotations["PlacedAt"] == "datetime.datetime"
        assert annotations["Total"] == "Optional[decimal.Decimal]"

    def test_self_reference_is_not_imported(self):
        employee = table(
            "employee",
            columns=[column("id", nullable=False), column("manager_id")],
            foreign_keys=[foreign_key("fk_employee_manager", "employee", ["manager_id"], "employee", ["id"])],
        )
        generated = EntityGenerator([employee]).generate_entity(employee, "hr")
        assert "TYPE_CHECKING" not in generated.content
        annotations = annotations_of(class_of(generated.content, "Employee"))
        assert annotations["EmployeeNav"] == "Optional[Employee]"
        assert annotations["Employees"] == "List[Employee]"

    def test_separate_by_schema_imports_across_packages(self):
        users = table("users")
        orders = table(
            "orders",
            schema="sales",
            columns=[column("id", nullable=False), column("user_id", nullable=False)],
            foreign_keys=[foreign_key(
                "fk_orders_user", "orders", ["user_id"], "users", ["id"], source_schema="sales",
            )],
        )
        generator = EntityGenerator([users, orders])
        generated = generator.generate_entity(orders, "shop", separate_by_schema=True)
        assert generated.filename == "sales/order.py"
        assert "from ..public.user import User" in generated.content

    def test_init_assigns_keyword_arguments(self):
        tables = shop_tables()
        generated = EntityGenerator(tables).generate_entity(find(tables, "users"), "shop")
        namespace = {}
        exec(compile(generated.content, generated.filename, "exec"), namespace)
        user = namespace["User"](Id=7, Email="ada@example.com")
        assert user.Id == 7
        assert user.Email == "ada@example.com"

    def test_create_entity_class_for_view(self):
        tables = [table("active_users", columns=[column("id")], primary_key=(), kind=ObjectKind.VIEW)]
        generator = EntityGenerator(tables)
        class_node = create_entity_class(generator.compile(tables[0]))
        assert class_node.name == "ActiveUser"
        assert ast.get_docstring(class_node) == "Maps the ``public.active_users`` view."

    def test_generate_entity_module_directly(self):
        tables = shop_tables()
        generator = EntityGenerator(tables)
        generated = generate_entity_module(generator.compile(find(tables, "users")), "shop")
        assert generated == generator.generate_entity(find(tables, "users"), "shop")
