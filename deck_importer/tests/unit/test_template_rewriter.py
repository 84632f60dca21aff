"""Unit tests for the template rewriter.

Tests cover:
- field substitution
- asset substitution (images and sounds)
- math normalization
- extras removal
- empty side detection and card rendering
"""

from unittest.mock import MagicMock

import pytest

from deck_importer.modules.importer.asset_resolver import AssetResolver
from deck_importer.modules.importer.context import ImportContext
from deck_importer.modules.importer.schemas import CardBuildInput, CardRow, NoteRow, NoteType
from deck_importer.modules.importer.template_rewriter import (
    TemplateRewriter,
    card_side_is_empty,
    format_asset_name,
    normalize_math,
    remove_extras,
    replace_field,
    replace_fields,
)
from deck_importer.shared.errors import EmptyCardSideError, UnknownContentTypeError

# ==================== Fixtures ====================


@pytest.fixture
def resolver() -> AssetResolver:
    """Resolver with deterministic ids and tokens."""
    ids = iter(f"asset{i}" for i in range(1, 100))
    return AssetResolver("demo.appspot.com", id_factory=lambda: next(ids), token_factory=lambda: "tok")


@pytest.fixture
def rewriter(resolver: AssetResolver) -> TemplateRewriter:
    return TemplateRewriter(resolver)


def make_card_input(fields: str, front: str = "{{Front}}", back: str = "{{Back}}") -> CardBuildInput:
    return CardBuildInput(
        note=NoteRow(id=7, model_id="1", fields=fields, tags=""),
        card=CardRow(id=70, note_id=7, ord=0),
        note_type=NoteType(id="1", name="Basic", field_names=["Front", "Back"]),
        front_template=front,
        back_template=back,
    )


# ==================== Field Substitution Tests ====================


class TestReplaceField:
    """Tests for field placeholder substitution."""

    def test_whitespace_around_name_is_tolerated(self):
        assert replace_field("{{Front}} / {{ Front }}", "Front", "Hi") == "Hi / Hi"

    def test_name_is_case_sensitive(self):
        assert replace_field("{{front}}", "Front", "Hi") == "{{front}}"

    def test_name_is_matched_literally(self):
        template = "{{Word (en)}} {{Word xenx}}"
        assert replace_field(template, "Word (en)", "dog") == "dog {{Word xenx}}"

    def test_backslashes_in_value_are_inserted_verbatim(self):
        assert replace_field("{{Math}}", "Math", r"\frac{1}{2} \1") == r"\frac{1}{2} \1"

    def test_unknown_fields_are_left_for_later_passes(self):
        assert replace_fields("{{Front}} {{Extra}}", ["Front"], ["Hi"]) == "Hi {{Extra}}"

    def test_substitution_is_idempotent(self):
        names = ["Front", "Back"]
        values = ["Hello", "World"]
        once = replace_fields("{{Front}} | {{ Back }} | {{Front}}", names, values)

        assert once == "Hello | World | Hello"
        assert replace_fields(once, names, values) == once

    def test_inserted_value_is_not_rescanned(self):
        assert replace_field("{{Front}}", "Front", "{{Front}}") == "{{Front}}"


# ==================== Math Normalization Tests ====================


class TestNormalizeMath:
    """Tests for [latex] block normalization."""

    def test_display_and_inline_math(self):
        assert normalize_math("[latex]$$x^2$$ and $y$[/latex]") == r"\[x^2\] and \(y\)"

    def test_block_without_dollars_is_unwrapped(self):
        assert normalize_math("a [latex]\\alpha[/latex] b") == "a \\alpha b"

    def test_multiple_blocks(self):
        assert normalize_math("[latex]$a$[/latex] + [latex]$$b$$[/latex]") == r"\(a\) + \[b\]"

    def test_multiline_block(self):
        assert normalize_math("[latex]$$a\nb$$[/latex]") == "\\[a\nb\\]"

    def test_dollars_pair_left_to_right(self):
        assert normalize_math("[latex]$5 and $x$ and $[/latex]") == r"\(5 and \)x\( and \)"

    def test_odd_dollar_is_left_in_place(self):
        assert normalize_math("[latex]$a$ $[/latex]") == r"\(a\) $"

    def test_text_outside_blocks_is_untouched(self):
        assert normalize_math("costs $5 or $6") == "costs $5 or $6"

    def test_unclosed_block_is_untouched(self):
        assert normalize_math("[latex]$x$") == "[latex]$x$"


# ==================== Extras Removal Tests ====================


class TestRemoveExtras:
    """Tests for leftover template syntax removal."""

    def test_conditional_leftovers_are_stripped(self):
        assert remove_extras("{{#Hint}}hint{{/Hint}}") == "hint"

    def test_product_name_is_stripped(self):
        assert remove_extras("Anki Card") == "Card"
        assert remove_extras("ANKI anki Card") == "Card"

    @pytest.mark.parametrize(
        "divider",
        ["<hr id=answer>", '<hr id="answer">', "<HR ID='answer' class=x>", '<hr class="x" id = "answer"/>'],
    )
    def test_answer_divider_is_replaced(self, divider: str):
        assert remove_extras(f"Q{divider}A") == "Q A"

    def test_surrounding_whitespace_is_trimmed(self):
        assert remove_extras("  \n text \t") == "text"


# ==================== Empty Side Tests ====================


class TestCardSideIsEmpty:
    """Tests for visually empty side detection."""

    @pytest.mark.parametrize("side", ["", " ", "<br>", "&nbsp;", "<br> &nbsp;\n<br><br>"])
    def test_empty_sides(self, side: str):
        assert card_side_is_empty(side) is True

    @pytest.mark.parametrize("side", ["x", "<br>x", "&nbsp;.", "<br/>", "<div></div>"])
    def test_visible_sides(self, side: str):
        assert card_side_is_empty(side) is False


class TestFormatAssetName:
    """Tests for asset labels."""

    @pytest.mark.parametrize(
        ("name", "label"),
        [
            ("my_cat-photo.final.png", "My cat photo.final"),
            ("DOG__run  fast.JPG", "Dog run fast"),
            ("plain.png", "Plain"),
            ("noextension", ""),
        ],
    )
    def test_labels(self, name: str, label: str):
        assert format_asset_name(name) == label


# ==================== Rendering Tests ====================


class TestRender:
    """Tests for the full rendering pipeline."""

    def test_passes_run_in_order(self, rewriter: TemplateRewriter, import_context: ImportContext):
        template = "{{Front}}<hr id=answer>[latex]$$x$$[/latex] {{#Back}}{{/Back}} Anki"

        side = rewriter.render(template, ["Front"], ["Q"], import_context)

        assert side == r"Q \[x\]"

    def test_image_is_wrapped_in_figure(self, rewriter: TemplateRewriter, import_context: ImportContext):
        side = rewriter.render('<img src="cat.png">', [], [], import_context)

        assert side == (
            '<figure class="image"><img src="https://firebasestorage.googleapis.com/v0/b/demo.appspot.com'
            '/o/deck-assets%2F1234%2Fasset1?alt=media&token=tok" alt="Cat"></figure>'
        )
        assert import_context.assets[0].source_path == str(import_context.deck_dir / "0")
        assert import_context.assets[0].content_type == "image/png"

    @pytest.mark.parametrize("tag", ["<img src='cat.png' />", "<IMG class=x src=cat.png>", '<img src=" cat.png ">'])
    def test_image_reference_variants(self, rewriter: TemplateRewriter, import_context: ImportContext, tag: str):
        side = rewriter.render(tag, [], [], import_context)

        assert side.startswith('<figure class="image">')
        assert len(import_context.assets) == 1

    def test_sound_becomes_audio(self, rewriter: TemplateRewriter, import_context: ImportContext):
        side = rewriter.render("Listen [sound:meow.mp3]", [], [], import_context)

        assert side.startswith("Listen <audio src=")
        assert side.endswith('"></audio>')
        assert import_context.assets[0].content_type == "audio/mpeg"

    def test_field_inserted_assets_are_resolved(self, rewriter: TemplateRewriter, import_context: ImportContext):
        side = rewriter.render("{{Back}}", ["Back"], ['<img src="cat.png">'], import_context)

        assert "deck-assets%2F1234%2Fasset1" in side

    def test_repeated_asset_is_queued_once(self, rewriter: TemplateRewriter, import_context: ImportContext):
        first = rewriter.render('<img src="cat.png">', [], [], import_context)
        second = rewriter.render('<img src="cat.png"><img src="cat.png">', [], [], import_context)

        assert first * 2 == second
        assert len(import_context.assets) == 1

    def test_unknown_content_type_leaves_match(self, rewriter: TemplateRewriter, import_context: ImportContext):
        side = rewriter.render('<img src="notes.xyz123">', [], [], import_context)

        assert side == '<img src="notes.xyz123">'
        assert import_context.assets == []

    def test_missing_media_entry_leaves_match(self, rewriter: TemplateRewriter, import_context: ImportContext):
        side = rewriter.render("[sound:missing.mp3]", [], [], import_context)

        assert side == "[sound:missing.mp3]"
        assert import_context.assets == []

    def test_resolution_failure_does_not_stop_other_matches(self, import_context: ImportContext):
        resolver = MagicMock(spec=AssetResolver)
        resolver.resolve.side_effect = [UnknownContentTypeError(), "https://x/meow"]
        rewriter = TemplateRewriter(resolver)

        side = rewriter.render('<img src="cat.png">[sound:meow.mp3]', [], [], import_context)

        assert side == '<img src="cat.png"><audio src="https://x/meow"></audio>'

    def test_escaped_filename_is_unescaped(self, rewriter: TemplateRewriter, import_context: ImportContext):
        import_context.media_map["tom&jerry.png"] = "3"

        side = rewriter.render('<img src="tom&amp;jerry.png">', [], [], import_context)

        assert 'alt="Tom&amp;jerry"' in side
        assert import_context.assets[0].source_path.endswith("3")


class TestRenderCard:
    """Tests for rendering both sides of a card."""

    def test_renders_front_and_back(self, rewriter: TemplateRewriter, import_context: ImportContext):
        front, back = rewriter.render_card(make_card_input("Hello\x1fWorld"), import_context)

        assert (front, back) == ("Hello", "World")

    def test_empty_front_is_rejected(self, rewriter: TemplateRewriter, import_context: ImportContext):
        with pytest.raises(EmptyCardSideError) as exc_info:
            rewriter.render_card(make_card_input("<br>&nbsp;\x1fWorld"), import_context)

        assert exc_info.value.details["side"] == "front"
        assert exc_info.value.details["note_id"] == 7

    def test_empty_back_is_rejected(self, rewriter: TemplateRewriter, import_context: ImportContext):
        with pytest.raises(EmptyCardSideError) as exc_info:
            rewriter.render_card(make_card_input("Hello\x1f"), import_context)

        assert exc_info.value.details["side"] == "back"

    def test_side_emptied_by_extras_removal_is_rejected(
        self, rewriter: TemplateRewriter, import_context: ImportContext
    ):
        card_input = make_card_input("Hello\x1fanki", back="{{#Back}}{{Back}}{{/Back}}")

        with pytest.raises(EmptyCardSideError):
            rewriter.render_card(card_input, import_context)
