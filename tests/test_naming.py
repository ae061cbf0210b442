"""
Tests for the naming convention utilities.
"""

import keyword
from unittest import TestCase

from db_entity_generator.domain.naming import (
    base_identifier,
    disambiguation_base,
    make_unique,
    module_name_for,
    pascalize,
    pluralize,
    sanitize_identifier,
    schema_package_name,
    singularize,
    to_snake_case,
)


class TestPascalize(TestCase):
    """Test cases for pascalize function"""

    def test_snake_case_words(self):
        assert pascalize("photo_file_id") == "PhotoFileId"

    def test_inner_capitals_are_kept(self):
        assert pascalize("ownerID") == "OwnerID"

    def test_digit_word_keeps_separator(self):
        assert pascalize("address_2") == "Address_2"

    def test_repeated_separators(self):
        assert pascalize("__first__name__") == "FirstName"


class TestSanitizeIdentifier(TestCase):
    """Test cases for sanitize_identifier function"""

    def test_plain_column(self):
        assert sanitize_identifier("full_name") == "FullName"

    def test_invalid_characters_become_separators(self):
        assert sanitize_identifier("first name") == "FirstName"
        assert sanitize_identifier("unit-price$") == "UnitPrice"

    def test_leading_digit_gets_prefix(self):
        assert sanitize_identifier("2fa_code") == "_2faCode"

    def test_empty_and_fully_invalid_fall_back_to_placeholder(self):
        assert sanitize_identifier("") == "Column"
        assert sanitize_identifier(None) == "Column"
        assert sanitize_identifier("$$$") == "Column"
        assert sanitize_identifier("", placeholder="Schema") == "Schema"

    def test_result_is_always_an_identifier(self):
        for raw in ["", "1", "a b c", "ä", "None", "class", "__", "9lives", "x-y-z"]:
            result = sanitize_identifier(raw)
            assert result.isidentifier(), raw
            assert not keyword.iskeyword(result), raw

    def test_keyword_gets_suffix(self):
        assert sanitize_identifier("none") == "None_"


class TestBaseIdentifier(TestCase):
    """Test cases for base_identifier function"""

    def test_plural_and_singular_share_a_base(self):
        assert base_identifier("orders") == "Order"
        assert base_identifier("order") == "Order"

    def test_singular_table_names_keep_their_spelling(self):
        assert base_identifier("address") == "Address"
        assert base_identifier("addresses") == "Address"
        assert base_identifier("order_status") == "OrderStatus"
        assert base_identifier("process") == "Process"
        assert base_identifier("bus") == "Bus"
        assert pluralize(base_identifier("address")) == "Addresses"

    def test_trailing_separators_are_stripped(self):
        assert base_identifier("orders_") == "Order"
        assert base_identifier("_orders__") == "Order"

    def test_only_last_word_is_singularized(self):
        assert base_identifier("users_roles") == "UsersRole"
        assert base_identifier("uploaded_file") == "UploadedFile"

    def test_empty_name_falls_back_to_placeholder(self):
        assert base_identifier("") == "Entity"
        assert base_identifier("___") == "Entity"
        assert base_identifier(None) == "Entity"

    def test_leading_digit(self):
        assert base_identifier("2024_sales") == "_2024Sale"


class TestDisambiguationBase(TestCase):
    """Test cases for disambiguation_base function"""

    def test_strips_trailing_id(self):
        assert disambiguation_base("photo_file_id") == "PhotoFile"
        assert disambiguation_base("signature_file_id") == "SignatureFile"

    def test_strips_upper_case_marker(self):
        assert disambiguation_base("ownerID") == "Owner"

    def test_marker_alone_is_kept(self):
        assert disambiguation_base("id") == "Id"
        assert disambiguation_base("ID") == "ID"

    def test_lower_case_suffix_is_not_a_marker(self):
        assert disambiguation_base("paid") == "Paid"

    def test_column_without_marker(self):
        assert disambiguation_base("author") == "Author"


class TestInflection(TestCase):
    """Test cases for singularize and pluralize"""

    def test_singularize(self):
        assert singularize("users") == "user"
        assert singularize("user") == "user"
        assert singularize("") == ""

    def test_singular_words_ending_in_s_are_kept(self):
        for word in ("address", "status", "process", "bus", "class", "access", "analysis"):
            assert singularize(word) == word, word

    def test_plurals_of_words_ending_in_s(self):
        assert singularize("addresses") == "address"
        assert singularize("statuses") == "status"
        assert singularize("processes") == "process"
        assert singularize("buses") == "bus"
        assert singularize("categories") == "category"

    def test_pluralize_keeps_pascal_case(self):
        assert pluralize("User") == "Users"
        assert pluralize("PhotoFile") == "PhotoFiles"

    def test_pluralize_empty(self):
        assert pluralize("") == ""


class TestModuleNames(TestCase):
    """Test cases for snake case conversions"""

    def test_to_snake_case(self):
        assert to_snake_case("UserAccount") == "user_account"
        assert to_snake_case("XMLHttpRequest") == "xml_http_request"
        assert to_snake_case("AppDbContext") == "app_db_context"

    def test_to_snake_case_rejects_non_strings(self):
        with self.assertRaises(TypeError):
            to_snake_case(None)

    def test_module_name_for(self):
        assert module_name_for("UploadedFile") == "uploaded_file"
        assert module_name_for("_2024Sale") == "_2024_sale"

    def test_module_name_for_keyword(self):
        assert module_name_for("Import") == "import_"

    def test_schema_package_name(self):
        assert schema_package_name("Sales") == "sales"
        assert schema_package_name("crm-archive") == "crm_archive"
        assert schema_package_name("") == "schema"


class TestMakeUnique(TestCase):
    """Test cases for make_unique function"""

    def test_free_candidate(self):
        assert make_unique("Order", set()) == "Order"

    def test_numeric_suffix_starts_at_two(self):
        assert make_unique("Order", {"Order"}) == "Order2"
        assert make_unique("Order", {"Order", "Order2"}) == "Order3"

    def test_fixed_suffix_first(self):
        assert make_unique("User", {"User"}, "Nav") == "UserNav"
        assert make_unique("User", {"User", "UserNav"}, "Nav") == "UserNav2"
