"""Rewriting of Anki card templates into portable HTML.

A side is rendered by four passes, each applied to the output of the
previous one:

1. field substitution (``{{Field}}``)
2. media substitution (``<img src>`` and ``[sound:]``)
3. math normalization (``[latex]`` blocks)
4. removal of leftover template syntax and branding
"""

import html
import logging
import re
from collections.abc import Iterable

from deck_importer.shared.errors import AssetResolutionError, EmptyCardSideError, MissingAssetError

from .asset_resolver import AssetResolver
from .context import ImportContext
from .schemas import CardBuildInput

logger = logging.getLogger(__name__)

IMAGE_SRC_REGEX = re.compile(
    r"""<img\b[^>]*?\bsrc\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))[^>]*>""",
    re.IGNORECASE,
)
SOUND_REGEX = re.compile(r"\[sound:(.+?)\]")
LATEX_BLOCK_REGEX = re.compile(r"\[latex\](.*?)\[/latex\]", re.DOTALL)
DISPLAY_MATH_REGEX = re.compile(r"\$\$(.+?)\$\$", re.DOTALL)
INLINE_MATH_REGEX = re.compile(r"\$(.+?)\$", re.DOTALL)
TEMPLATE_EXPRESSION_REGEX = re.compile(r"\{\{.*?\}\}")
ANSWER_DIVIDER_REGEX = re.compile(r"""<hr.*?id\s*=\s*["']?answer["']?.*?>""", re.IGNORECASE)
PRODUCT_NAME_REGEX = re.compile(r"anki", re.IGNORECASE)
EMPTY_SIDE_REGEX = re.compile(r"(?:<br>|&nbsp;|\s)*")
ASSET_NAME_SEPARATORS_REGEX = re.compile(r"[-_\s]+")


def replace_field(template: str, name: str, value: str) -> str:
    """Replace every ``{{ name }}`` placeholder with ``value``."""
    pattern = re.compile(r"\{\{\s*" + re.escape(name) + r"\s*\}\}")
    return pattern.sub(lambda _: value, template)


def replace_fields(template: str, field_names: Iterable[str], field_values: Iterable[str]) -> str:
    """Substitute field values positionally aligned with their names."""
    for name, value in zip(field_names, field_values):
        template = replace_field(template, name, value)
    return template


def _splice(text: str, match: re.Match[str], replacement: str) -> str:
    return text[: match.start()] + replacement + text[match.end() :]


def _normalize_math_block(content: str) -> str:
    # Every rewrite consumes at least two dollar signs
    for _ in range(content.count("$")):
        display = DISPLAY_MATH_REGEX.search(content)
        if display:
            content = _splice(content, display, rf"\[{display.group(1)}\]")
            continue

        inline = INLINE_MATH_REGEX.search(content)
        if inline:
            content = _splice(content, inline, rf"\({inline.group(1)}\)")
            continue

        break
    return content


def normalize_math(template: str) -> str:
    """Unwrap ``[latex]`` blocks, converting ``$$..$$`` and ``$..$`` delimiters.

    ``$$a$$`` becomes ``\\[a\\]`` and ``$a$`` becomes ``\\(a\\)``.
    """
    for _ in range(template.count("[latex]")):
        match = LATEX_BLOCK_REGEX.search(template)
        if match is None:
            break
        template = _splice(template, match, _normalize_math_block(match.group(1)))
    return template


def remove_extras(template: str) -> str:
    """Strip unresolved template expressions, the answer divider and branding."""
    template = TEMPLATE_EXPRESSION_REGEX.sub("", template)
    template = ANSWER_DIVIDER_REGEX.sub(" ", template)
    template = PRODUCT_NAME_REGEX.sub("", template)
    return template.strip()


def card_side_is_empty(side: str) -> bool:
    """Whether a rendered side holds nothing but breaks, ``&nbsp;`` and whitespace."""
    return EMPTY_SIDE_REGEX.fullmatch(side) is not None


def format_asset_name(name: str) -> str:
    """Human readable label for an asset filename.

    >>> format_asset_name("my_cat-photo.final.png")
    'My cat photo.final'
    """
    stem = ".".join(name.split(".")[:-1])
    return ASSET_NAME_SEPARATORS_REGEX.sub(" ", stem).capitalize()


class TemplateRewriter:
    """Renders card templates into sanitized HTML fragments.

    Example:
        >>> rewriter = TemplateRewriter(AssetResolver("bucket.appspot.com"))
        >>> rewriter.render("{{Front}}", ["Front"], ["Hello"], context)
        'Hello'
    """

    def __init__(self, resolver: AssetResolver) -> None:
        self.resolver = resolver

    def render(
        self,
        template: str,
        field_names: list[str],
        field_values: list[str],
        context: ImportContext,
    ) -> str:
        """Render one side of a card.

        Args:
            template: Raw Anki template.
            field_names: Note type field names ordered by ``ord``.
            field_values: Note field values aligned with ``field_names``.
            context: Import run receiving the resolved assets.

        Returns:
            Sanitized HTML.
        """
        side = replace_fields(template, field_names, field_values)
        side = self.replace_assets(side, context)
        side = normalize_math(side)
        return remove_extras(side)

    def render_card(self, card_input: CardBuildInput, context: ImportContext) -> tuple[str, str]:
        """Render both sides of a card.

        Returns:
            Tuple of (front, back).

        Raises:
            EmptyCardSideError: If either side renders to nothing visible.
        """
        field_names = card_input.note_type.field_names
        field_values = card_input.note.field_values

        front = self.render(card_input.front_template, field_names, field_values, context)
        back = self.render(card_input.back_template, field_names, field_values, context)

        for side_name, side in (("front", front), ("back", back)):
            if card_side_is_empty(side):
                raise EmptyCardSideError(
                    details={"note_id": card_input.note.id, "card_ord": card_input.card.ord, "side": side_name}
                )

        return front, back

    def replace_assets(self, template: str, context: ImportContext) -> str:
        """Point image and sound references at their uploaded copies.

        References that cannot be resolved are logged and left unchanged.
        """

        def replace_image(match: re.Match[str]) -> str:
            name = next(group for group in match.groups() if group is not None)
            url = self._resolve(name, context)
            if url is None:
                return match.group(0)
            label = html.escape(format_asset_name(self._clean_name(name)))
            return f'<figure class="image"><img src="{url}" alt="{label}"></figure>'

        def replace_sound(match: re.Match[str]) -> str:
            url = self._resolve(match.group(1), context)
            if url is None:
                return match.group(0)
            return f'<audio src="{url}"></audio>'

        template = IMAGE_SRC_REGEX.sub(replace_image, template)
        return SOUND_REGEX.sub(replace_sound, template)

    @staticmethod
    def _clean_name(name: str) -> str:
        return html.unescape(name.strip())

    def _resolve(self, raw_name: str, context: ImportContext) -> str | None:
        name = self._clean_name(raw_name)
        logger.debug(f"Found asset in card template: {name}")

        try:
            on_disk = context.media_map.get(name)
            if on_disk is None:
                raise MissingAssetError(details={"name": name})

            url = self.resolver.resolve(context, str(context.deck_dir / on_disk), name)
        except AssetResolutionError as e:
            logger.warning(f"Unable to resolve asset {name!r}: {e.message}")
            return None

        logger.debug(f"Found asset url: {url}")
        return url
