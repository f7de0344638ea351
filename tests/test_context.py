"""Tests for replacement synthesis: context prefixes and composable detection."""

from pathlib import Path

import pytest

from externalizer.config import ExtractorConfig
from externalizer.dialects import dialect_for_file
from externalizer.errors import SynthesisError
from externalizer.utils.documents import Workspace

QUALIFIER = "com.example.app"
REFERENCE = "com.example.app.R.string.k_ab"
ACCESSOR = "androidx.compose.ui.res.stringResource"


def build(
    root: Path,
    relative: str,
    source: str,
    text: str,
    qualifier: str | None = QUALIFIER,
) -> str:
    """Scan a source, pick the occurrence with ``text`` and synthesize its replacement."""
    path = root / relative
    path.write_text(source)
    config = ExtractorConfig()
    dialect = dialect_for_file(path)
    doc = Workspace(root).document(path)
    occurrence = next(o for o in dialect.detect(doc, config, relative) if o.text == text)
    node = doc.node_at(occurrence.handle)
    return dialect.build_expression(doc, node, occurrence, qualifier, "k_ab", config)


class TestJavaContextPrefix:
    """Tests for the receiver of imperative lookups in Java."""

    def test_activity_needs_no_receiver(self, temp_dir: Path) -> None:
        """An Activity calls the lookup function directly."""
        source = """class MainActivity extends AppCompatActivity {
    void onStart() { title.setText("Welcome back"); }
}
"""
        result = build(temp_dir, "MainActivity.java", source, "Welcome back")
        assert result == f"getString({REFERENCE})"

    def test_fragment_supertype(self, temp_dir: Path) -> None:
        """A Fragment subclass calls the lookup function directly."""
        source = """class Home extends Fragment {
    void onStart() { title.setText("Home screen"); }
}
"""
        assert build(temp_dir, "Home.java", source, "Home screen") == f"getString({REFERENCE})"

    def test_context_field(self, temp_dir: Path) -> None:
        """A context-like field becomes the receiver."""
        source = """class Helper {
    private final Context mContext;
    void show() { toast.show("Ready now"); }
}
"""
        result = build(temp_dir, "Helper.java", source, "Ready now")
        assert result == f"mContext.getString({REFERENCE})"

    def test_fallback_prefix(self, temp_dir: Path) -> None:
        """Without a context the configured fallback prefix is used."""
        source = 'class Plain { String label() { return "Plain label"; } }\n'
        result = build(temp_dir, "Plain.java", source, "Plain label")
        assert result == f"App.instance.getString({REFERENCE})"

    def test_arguments_follow_reference(self, temp_dir: Path) -> None:
        """Folded arguments are passed after the resource reference."""
        source = 'class Plain { String label(int n) { return "Items: " + n; } }\n'
        result = build(temp_dir, "Plain.java", source, "Items: %1$s")
        assert result == f"App.instance.getString({REFERENCE}, n)"

    def test_missing_qualifier(self, temp_dir: Path) -> None:
        """Code replacements need a resolved namespace."""
        source = 'class Plain { String label() { return "Plain label"; } }\n'
        with pytest.raises(SynthesisError, match="cannot resolve namespace"):
            build(temp_dir, "Plain.java", source, "Plain label", qualifier=None)


class TestKotlinContextPrefix:
    """Tests for the receiver of imperative lookups in Kotlin."""

    def test_constructor_property(self, temp_dir: Path) -> None:
        """A val constructor parameter named context becomes the receiver."""
        source = """class Repo(private val context: Context) {
    fun label() = format("Repository label")
}
"""
        result = build(temp_dir, "Repo.kt", source, "Repository label")
        assert result == f"context.getString({REFERENCE})"

    def test_fragment_name(self, temp_dir: Path) -> None:
        """A class named like a Fragment needs no receiver."""
        source = """class HomeFragment : Fragment() {
    fun bind() { title.text = "Home title" }
}
"""
        assert build(temp_dir, "HomeFragment.kt", source, "Home title") == f"getString({REFERENCE})"

    def test_top_level_function(self, temp_dir: Path) -> None:
        """Top-level functions fall back to the global prefix."""
        source = 'fun label() = format("Top level")\n'
        result = build(temp_dir, "Label.kt", source, "Top level")
        assert result == f"App.instance.getString({REFERENCE})"


class TestComposableDetection:
    """Tests for choosing the declarative accessor in Kotlin."""

    def test_composable_function(self, temp_dir: Path) -> None:
        """A @Composable function uses the declarative accessor."""
        source = """@Composable
fun Greeting(name: String) {
    Text("Hello, $name!")
}
"""
        result = build(temp_dir, "Greeting.kt", source, "Hello, %1$s!")
        assert result == f"{ACCESSOR}({REFERENCE}, name)"

    def test_callback_lambda_is_imperative(self, temp_dir: Path) -> None:
        """An onClick lambda is a plain callback; trailing content is composable."""
        source = """@Composable
fun Screen() {
    Button(onClick = { show("Clicked item") }) {
        Text("Press me")
    }
}
"""
        clicked = build(temp_dir, "Screen.kt", source, "Clicked item")
        pressed = build(temp_dir, "Screen.kt", source, "Press me")

        assert clicked == f"App.instance.getString({REFERENCE})"
        assert pressed == f"{ACCESSOR}({REFERENCE})"

    def test_trailing_content_outside_composable(self, temp_dir: Path) -> None:
        """Layout calls make their trailing lambda composable."""
        source = """fun build() {
    Column {
        Text("Inside column")
    }
}
"""
        result = build(temp_dir, "Build.kt", source, "Inside column")
        assert result == f"{ACCESSOR}({REFERENCE})"

    def test_parameter_declared_composable(self, temp_dir: Path) -> None:
        """A trailing lambda bound to a @Composable parameter of a local function."""
        source = """@Composable
fun Section(title: String, content: @Composable () -> Unit) {
    content()
}

fun host() {
    Section("Header text") {
        Text("Body text")
    }
}
"""
        body = build(temp_dir, "Section.kt", source, "Body text")
        header = build(temp_dir, "Section.kt", source, "Header text")

        assert body == f"{ACCESSOR}({REFERENCE})"
        assert header == f"App.instance.getString({REFERENCE})"

    def test_plain_function(self, temp_dir: Path) -> None:
        """Lambdas of ordinary calls are not composable."""
        source = """fun notify() {
    listOf(1).forEach { show("Plain callback") }
}
"""
        result = build(temp_dir, "Notify.kt", source, "Plain callback")
        assert result == f"App.instance.getString({REFERENCE})"

    def test_stored_lambda_is_imperative(self, temp_dir: Path) -> None:
        """A lambda kept in a variable is not composable even in a composable function."""
        source = """@Composable
fun Screen() {
    val onSave = { show("Saved item") }
    Button(onClick = onSave) { Text("Save") }
}
"""
        result = build(temp_dir, "Screen.kt", source, "Saved item")
        assert result == f"App.instance.getString({REFERENCE})"

    def test_lambda_marked_composable(self, temp_dir: Path) -> None:
        """An explicit @Composable on the lambda wins outside composable code."""
        source = """fun host() {
    run @Composable {
        Text("Marked content")
    }
}
"""
        result = build(temp_dir, "Host.kt", source, "Marked content")
        assert result == f"{ACCESSOR}({REFERENCE})"

    def test_enclosing_composable_decides(self, temp_dir: Path) -> None:
        """An unknown trailing call inherits the enclosing function's annotation."""
        source = """@Composable
fun Themed() {
    CompositionLocalProvider(LocalTint provides Color.Red) {
        Text("Provided text")
    }
}
"""
        result = build(temp_dir, "Themed.kt", source, "Provided text")
        assert result == f"{ACCESSOR}({REFERENCE})"


class TestMarkupExpression:
    def test_reference_without_qualifier(self, temp_dir: Path) -> None:
        """Markup references need no namespace."""
        source = '<TextView android:text="Hello world" />\n'
        result = build(temp_dir, "main.xml", source, "Hello world", qualifier=None)
        assert result == "@string/k_ab"
