"""Tag-expression extraction and blacklist filtering.

Expression syntax: ``MAIN - EXCLUDE1,EXCLUDE2``

MAIN selects the regions to keep and is one of:
  - complex:   ``<details><summary>Summary</summary>,</details>``
               literal start markup, a comma, and the closing tag
  - html-form: ``<content>`` (attributes allowed on the opening tag)
  - simple:    ``content``

Each EXCLUDE token is either ``/pattern/flags`` or a tag name (bare or
``<tag>``) whose pairs are removed from every extracted block.
"""

import re

from shared.errors import ExtractionError
from shared.helper.HelperConfig import HelperConfig
from shared.models.extraction import (
    Diagnostic,
    ExcludeRule,
    ExtractionResult,
    ExtractionStats,
    TagExpression,
)

_EXCLUDE_SEPARATOR = " - "
_REGEX_TOKEN = re.compile(r"^/(.+)/([gimsuy]*)$")
_HTML_TAG = re.compile(r"<(\w+)(?:\s[^>]*)?>")
_CLOSING_TAG = re.compile(r"</(\w+)>")


def _compile_js_flags(flags: str) -> tuple[int, bool]:
    """Translate JavaScript-style regex flags.

    Returns:
        tuple[int, bool]: The re flags and whether every match is replaced ("g").
    """
    re_flags = 0
    if "i" in flags:
        re_flags |= re.IGNORECASE
    if "m" in flags:
        re_flags |= re.MULTILINE
    if "s" in flags:
        re_flags |= re.DOTALL
    return re_flags, "g" in flags


def normalize_whitespace(content: str) -> str:
    """Collapse 3+ newlines to 2 and strip whitespace around line breaks."""
    result = re.sub(r"\n\s*\n\s*\n", "\n\n", content)
    result = result.strip()
    result = re.sub(r"\n[ \t]+", "\n", result)
    result = re.sub(r"[ \t]+\n", "\n", result)
    return result.strip()


class TagFilter:
    """Applies tag expressions and the content blacklist to raw text."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    ##########################################
    ################ PARSER ##################
    ##########################################

    def parse_tag_expression(self, expression: str) -> TagExpression:
        """Split an expression into its main tag and exclusion rules.

        Args:
            expression (str): e.g. "content - thinking,/\\[OOC[^\\]]*\\]/g"

        Returns:
            TagExpression: The main tag (trimmed) and the parsed exclusion rules.
        """
        if _EXCLUDE_SEPARATOR not in expression:
            return TagExpression(main_tag=expression.strip(), exclude_tags=[])

        parts = expression.split(_EXCLUDE_SEPARATOR)
        main_tag, exclude_part = parts[0], parts[1]
        rules: list[ExcludeRule] = []
        for token in exclude_part.split(","):
            token = token.strip()
            if not token:
                continue
            regex_match = _REGEX_TOKEN.match(token)
            if regex_match:
                rules.append(ExcludeRule(type="regex", pattern=regex_match.group(1), flags=regex_match.group(2) or "gi"))
            else:
                rules.append(ExcludeRule(type="tag", name=token))
        return TagExpression(main_tag=main_tag.strip(), exclude_tags=rules)

    ##########################################
    ############### EXTRACTORS ###############
    ##########################################

    def extract_complex_tag(self, text: str, tag: str) -> list[str]:
        """Extract everything between a literal start pattern and a closing tag.

        Args:
            text (str): Text to search.
            tag (str): "START,</end>" configuration.

        Returns:
            list[str]: Trimmed non-empty matches in order.

        Raises:
            ExtractionError: If the configuration has no single comma or no parsable closing tag.
        """
        parts = tag.split(",")
        if len(parts) != 2:
            raise ExtractionError(f"Complex tag must contain exactly one comma: {tag}")

        start_pattern = parts[0].strip()
        end_match = _CLOSING_TAG.search(parts[1].strip())
        if not end_match:
            raise ExtractionError(f"Cannot parse closing tag: {parts[1].strip()}")
        end_tag_name = end_match.group(1)

        regex = re.compile(rf"{re.escape(start_pattern)}([\s\S]*?)</{end_tag_name}>", re.IGNORECASE)
        return self._collect_matches(regex, text)

    def extract_html_format_tag(self, text: str, tag: str, diagnostics: list[Diagnostic] | None = None) -> list[str]:
        """Extract <name ...>...</name> pairs for a tag written as "<name>".

        Raises:
            ExtractionError: If no tag name can be read from the expression.
        """
        tag_match = _HTML_TAG.search(tag)
        if not tag_match:
            raise ExtractionError(f"Cannot parse HTML-form tag: {tag}")
        name = re.escape(tag_match.group(1))

        regex = re.compile(rf"<{name}(?:\s[^>]*)?>([\s\S]*?)</{name}>", re.IGNORECASE)
        blocks = self._collect_matches(regex, text)
        self._check_balance(text, rf"<{name}(?:\s[^>]*)?>", rf"</{name}>", tag, diagnostics)
        return blocks

    def extract_simple_tag(self, text: str, tag: str, diagnostics: list[Diagnostic] | None = None) -> list[str]:
        """Extract <tag>...</tag> pairs for a bare tag name."""
        name = re.escape(tag)
        regex = re.compile(rf"<{name}>([\s\S]*?)</{name}>", re.IGNORECASE)
        blocks = self._collect_matches(regex, text)
        self._check_balance(text, rf"<{name}>", rf"</{name}>", tag, diagnostics)
        return blocks

    def extract_main_tag(self, text: str, main_tag: str, diagnostics: list[Diagnostic] | None = None) -> list[str]:
        """Dispatch to the extraction mode selected by the shape of the main tag."""
        if "," in main_tag:
            return self.extract_complex_tag(text, main_tag)
        if "<" in main_tag and ">" in main_tag:
            return self.extract_html_format_tag(text, main_tag, diagnostics)
        return self.extract_simple_tag(text, main_tag, diagnostics)

    def _collect_matches(self, regex: re.Pattern, text: str) -> list[str]:
        blocks = []
        for match in regex.finditer(text):
            block = match.group(1).strip()
            if block:
                blocks.append(block)
        return blocks

    def _check_balance(self, text: str, open_pattern: str, close_pattern: str, tag: str, diagnostics: list[Diagnostic] | None) -> None:
        open_count = len(re.findall(open_pattern, text, re.IGNORECASE))
        close_count = len(re.findall(close_pattern, text, re.IGNORECASE))
        if open_count > close_count:
            message = f"Found {open_count - close_count} unclosed <{tag.strip('<>')}> tag(s)"
            self.logging.warning(message)
            if diagnostics is not None:
                diagnostics.append(Diagnostic(expression=tag, message=message))

    ##########################################
    ############### EXCLUSION ################
    ##########################################

    def remove_excluded_tags(self, content: str, exclude_tags: list[ExcludeRule], diagnostics: list[Diagnostic] | None = None) -> str:
        """Remove every excluded region from a block and normalise its whitespace.

        A rule that fails to compile is logged and skipped; the remaining rules still apply.
        """
        result = content
        for rule in exclude_tags:
            try:
                if rule.type == "regex":
                    re_flags, replace_all = _compile_js_flags(rule.flags)
                    result = re.sub(rule.pattern, "", result, count=0 if replace_all else 1, flags=re_flags)
                else:
                    name = rule.name or ""
                    if "<" in name and ">" in name:
                        tag_match = _HTML_TAG.search(name)
                        if not tag_match:
                            continue
                        name = tag_match.group(1)
                    name = re.escape(name)
                    result = re.sub(rf"<{name}(?:\s[^>]*)?>[\s\S]*?</{name}>", "", result, flags=re.IGNORECASE)
            except re.error as e:
                label = rule.pattern if rule.type == "regex" else rule.name
                self.logging.warning("Tag exclusion failed for %r: %s", label, e)
                if diagnostics is not None:
                    diagnostics.append(Diagnostic(expression=str(label), message=f"Invalid exclusion: {e}"))
        return normalize_whitespace(result)

    ##########################################
    ############### BLACKLIST ################
    ##########################################

    def should_skip_content(self, text: str, blacklist: list[str] | None) -> bool:
        """Whether the text contains any blacklist keyword (case-insensitive)."""
        if not blacklist:
            return False
        lower_text = text.lower()
        for keyword in blacklist:
            lower_keyword = keyword.strip().lower()
            if lower_keyword and lower_keyword in lower_text:
                return True
        return False

    ##########################################
    ############### EXTRACTION ###############
    ##########################################

    def extract_detailed(self, text: str, expressions: list[str] | None, blacklist: list[str] | None = None) -> ExtractionResult:
        """Apply all tag expressions to a text and report what happened.

        Expressions that fail are recorded as diagnostics and skipped. When no
        expression matched anything, the original text is returned unchanged.
        When blocks matched but every one of them was excluded or blacklisted,
        the result text is empty.

        Args:
            text (str): Raw text.
            expressions (list[str] | None): Tag expressions in priority order.
            blacklist (list[str] | None): Keywords that drop an extracted block.

        Returns:
            ExtractionResult: The extracted text, surviving blocks, diagnostics and stats.
        """
        if not expressions:
            return ExtractionResult(text=text, fell_back=True)

        blocks: list[str] = []
        diagnostics: list[Diagnostic] = []
        stats = ExtractionStats()

        for expression in expressions:
            try:
                parsed = self.parse_tag_expression(expression)
                main_content = self.extract_main_tag(text, parsed.main_tag, diagnostics)
                stats.original_blocks += len(main_content)

                if parsed.exclude_tags:
                    after_exclusion = [
                        self.remove_excluded_tags(content, parsed.exclude_tags, diagnostics)
                        for content in main_content
                    ]
                    after_exclusion = [content for content in after_exclusion if content.strip()]
                    stats.excluded_blocks += len(main_content) - len(after_exclusion)
                    main_content = after_exclusion

                kept = []
                for content in main_content:
                    if self.should_skip_content(content, blacklist):
                        self.logging.debug("Blacklist dropped block: %s...", content[:50])
                        stats.blacklisted_blocks += 1
                        continue
                    kept.append(content)

                stats.final_blocks += len(kept)
                blocks.extend(kept)
            except (ExtractionError, re.error) as e:
                self.logging.warning("Tag expression %r skipped: %s", expression, e)
                diagnostics.append(Diagnostic(expression=expression, message=str(e), level="error"))

        if blocks:
            return ExtractionResult(text="\n\n".join(blocks), blocks=blocks, diagnostics=diagnostics, stats=stats)
        if stats.original_blocks > 0:
            # matched, but filtering stripped every block
            return ExtractionResult(text="", blocks=[], diagnostics=diagnostics, stats=stats)
        return ExtractionResult(text=text, fell_back=True, diagnostics=diagnostics, stats=stats)

    def extract(self, text: str, expressions: list[str] | None, blacklist: list[str] | None = None) -> str:
        """Apply tag expressions to a text. See extract_detailed()."""
        return self.extract_detailed(text, expressions, blacklist).text
