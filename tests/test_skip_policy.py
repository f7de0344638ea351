"""Tests for the literal skip policy."""

from externalizer.analyzers.skip_policy import (
    SyntacticContext,
    is_in_test_dir,
    is_technical_call,
    is_technical_content,
    is_technical_receiver,
    should_skip,
)


class TestTechnicalContent:
    """Tests for content-only rules."""

    def test_hex_colors(self) -> None:
        """Pure hex colors are technical."""
        assert should_skip("#FF00FF") is True
        assert should_skip("#80FF00FF") is True

    def test_uris(self) -> None:
        """Anything carrying a URI scheme is technical."""
        assert should_skip("http://x") is True
        assert should_skip("https://example.com/help") is True
        assert should_skip("see content://media/external") is True

    def test_attribute_prefixes(self) -> None:
        """Namespaced attribute names are technical."""
        assert is_technical_content("android:layout_width") is True
        assert is_technical_content("tools:ignore") is True

    def test_length_one_and_blank(self) -> None:
        """Blank text and single characters are skipped."""
        assert should_skip("") is True
        assert should_skip("   ") is True
        assert should_skip("A") is True
        assert should_skip(" A ") is True

    def test_placeholders_only(self) -> None:
        """Format-only strings carry no words."""
        assert should_skip("%1$s") is True
        assert should_skip("%d / %d") is True
        assert should_skip("%1$s: %2$.2f") is True

    def test_letters_after_placeholder_strip(self) -> None:
        """Text with letters outside the placeholders is user-facing."""
        assert should_skip("Hello %1$s") is False
        assert should_skip("Save") is False

    def test_non_latin_letters(self) -> None:
        """Letters from any script count."""
        assert should_skip("保存") is False
        assert should_skip("บันทึก") is False

    def test_digits_and_symbols(self) -> None:
        """Text without letters is skipped."""
        assert should_skip("12:30") is True
        assert should_skip("--") is True


class TestFoldedText:
    """Tests for templates and concatenations (has_arguments)."""

    def test_static_symbols_are_enough(self) -> None:
        """Static text without letters is kept when arguments carry the words."""
        assert should_skip("66|%1$s", has_arguments=True) is False
        assert should_skip("id=%1$s!", has_arguments=True) is False

    def test_blank_static_text(self) -> None:
        """Placeholders separated only by blanks are skipped."""
        assert should_skip("%1$s%2$s", has_arguments=True) is True
        assert should_skip("%1$s %2$s", has_arguments=True) is True

    def test_uri_concatenation(self) -> None:
        """A URL with arguments is skipped."""
        assert should_skip("https://api.example.com/%1$s", has_arguments=True) is True


class TestContextRules:
    """Tests for rules that need the syntactic context."""

    def test_test_directories(self) -> None:
        """Sources under test/ or androidTest/ are skipped."""
        context = SyntacticContext(path="app/src/test/java/FooTest.java")
        assert should_skip("Hello there", context) is True
        context = SyntacticContext(path="app/src/androidTest/java/FooTest.kt")
        assert should_skip("Hello there", context) is True

    def test_test_directory_must_be_a_segment(self) -> None:
        """Directory names merely containing 'test' do not count."""
        assert is_in_test_dir("app/src/main/java/testing/Foo.java") is False
        assert is_in_test_dir("app/src/main/java/latest/Foo.java") is False
        assert is_in_test_dir("test.java") is False

    def test_annotation_argument(self) -> None:
        """Text inside annotations is skipped."""
        context = SyntacticContext(path="Foo.java", in_annotation=True)
        assert should_skip("user_name", context) is True

    def test_log_call(self) -> None:
        """A literal passed to a call named log is skipped."""
        context = SyntacticContext(path="Foo.kt", call_name="log")
        assert should_skip("Something happened", context) is True

    def test_method_names_are_case_insensitive(self) -> None:
        """Only known technical method names match."""
        assert is_technical_call("putExtra") is True
        assert is_technical_call("getSharedPreferences") is False
        assert is_technical_call("setText") is False
        assert is_technical_call(None) is False

    def test_technical_receivers(self) -> None:
        """Logging and build-config receivers are technical."""
        assert is_technical_receiver("Log") is True
        assert is_technical_receiver("android.util.Log") is True
        assert is_technical_receiver("Timber") is True
        assert is_technical_receiver("BuildConfig.FLAVOR") is True
        assert is_technical_receiver("binding.title") is False

    def test_receiver_rule(self) -> None:
        """A call on a technical receiver is skipped."""
        context = SyntacticContext(path="Foo.java", call_name="fooBar", receiver="Timber")
        assert should_skip("Loaded items", context) is True

    def test_ui_call_is_kept(self) -> None:
        """UI calls keep their text."""
        context = SyntacticContext(path="Foo.java", call_name="setText", receiver="title")
        assert should_skip("Welcome back", context) is False

    def test_content_rules_run_first(self) -> None:
        """A colour inside a UI call is still skipped."""
        context = SyntacticContext(path="Foo.java", call_name="setText")
        assert should_skip("#FFFFFF", context) is True
