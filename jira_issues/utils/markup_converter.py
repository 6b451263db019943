"""Converter from Markdown to Jira wiki markup.

Comment and worklog bodies are written in Markdown by users but the v2 REST
API stores wiki markup, so bodies are converted before they are sent.
"""

import logging
import re

logger = logging.getLogger(__name__)

_PLACEHOLDER = "\x00{}\x00"


class JiraMarkupConverter:
    """Converts Markdown to Jira wiki markup.

    This converter handles:
    1. Fenced and indented code blocks, inline code
    2. Headings (# through ######)
    3. Bold, italic and strikethrough text
    4. Ordered and unordered lists, including nesting
    5. Block quotes
    6. Links and images
    7. Horizontal rules
    8. Tables
    """

    def __init__(self) -> None:
        self._compile_patterns()

    def _compile_patterns(self) -> None:
        """Compile regex patterns for efficient text processing."""
        self.fenced_code_pattern = re.compile(r"^```[ \t]*([\w+-]*)[ \t]*\n(.*?)\n?```[ \t]*$", re.MULTILINE | re.DOTALL)
        self.inline_code_pattern = re.compile(r"`([^`\n]+)`")

        self.heading_pattern = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)

        # Bold first so ** is not taken for two italics
        self.bold_pattern = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1")
        self.italic_star_pattern = re.compile(r"(?<![\*\w])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\*\w])")
        self.italic_underscore_pattern = re.compile(r"(?<![_\w])_(?=\S)([^_\n]+?)(?<=\S)_(?![_\w])")
        self.strikethrough_pattern = re.compile(r"~~(?=\S)(.+?)(?<=\S)~~")

        self.unordered_list_pattern = re.compile(r"^([ \t]*)[-*+][ \t]+(.+)$", re.MULTILINE)
        self.ordered_list_pattern = re.compile(r"^([ \t]*)\d+[.)][ \t]+(.+)$", re.MULTILINE)

        self.blockquote_pattern = re.compile(r"^>[ \t]?(.*)$", re.MULTILINE)
        self.hr_pattern = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.MULTILINE)

        self.image_pattern = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
        self.link_pattern = re.compile(r"\[([^\]]+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
        self.autolink_pattern = re.compile(r"<(https?://[^>\s]+)>")

        self.table_separator_pattern = re.compile(r"^\|?[ \t]*:?-{3,}:?[ \t]*(\|[ \t]*:?-{3,}:?[ \t]*)*\|?[ \t]*$")

    def convert(self, markdown: str | None) -> str:
        """Convert Markdown to Jira wiki markup.

        Args:
            markdown: The Markdown text to convert

        Returns:
            Converted Jira wiki markup

        """
        if not markdown or not isinstance(markdown, str) or not markdown.strip():
            return ""

        logger.debug("Converting Markdown to Jira wiki markup")

        # Code is protected from every other rule and restored last
        protected: list[str] = []
        text = self._protect_code_blocks(markdown, protected)
        text = self._protect_inline_code(text, protected)

        text = self._convert_tables(text)
        text = self._convert_horizontal_rules(text)
        text = self._convert_headings(text)
        text = self._convert_lists(text)
        text = self._convert_block_quotes(text)
        text = self._convert_images(text)
        text = self._convert_links(text)
        text = self._convert_text_formatting(text)

        text = self._restore(text, protected)
        return self._cleanup_whitespace(text)

    def _protect_code_blocks(self, text: str, protected: list[str]) -> str:
        """Replace fenced code blocks with {code} macros held aside."""

        def replace_code_block(match: re.Match[str]) -> str:
            language = match.group(1)
            content = match.group(2)
            macro = f"{{code:{language}}}" if language else "{code}"
            protected.append(f"{macro}\n{content}\n{{code}}")
            return _PLACEHOLDER.format(len(protected) - 1)

        return self.fenced_code_pattern.sub(replace_code_block, text)

    def _protect_inline_code(self, text: str, protected: list[str]) -> str:
        """Replace `code` spans with {{code}} held aside."""

        def replace_inline(match: re.Match[str]) -> str:
            protected.append(f"{{{{{match.group(1)}}}}}")
            return _PLACEHOLDER.format(len(protected) - 1)

        return self.inline_code_pattern.sub(replace_inline, text)

    def _restore(self, text: str, protected: list[str]) -> str:
        for index, original in enumerate(protected):
            text = text.replace(_PLACEHOLDER.format(index), original)
        return text

    def _convert_headings(self, text: str) -> str:
        """Convert ATX headings to h1. through h6."""

        def replace_heading(match: re.Match[str]) -> str:
            level = len(match.group(1))
            return f"h{level}. {match.group(2).strip()}"

        return self.heading_pattern.sub(replace_heading, text)

    def _convert_text_formatting(self, text: str) -> str:
        """Convert bold, italic and strikethrough."""
        # Bold goes through a marker so the italic rule does not see it again
        text = self.bold_pattern.sub(lambda m: f"\x01{m.group(2)}\x01", text)
        text = self.italic_star_pattern.sub(r"_\1_", text)
        text = self.italic_underscore_pattern.sub(r"_\1_", text)
        text = self.strikethrough_pattern.sub(r"-\1-", text)
        return text.replace("\x01", "*")

    def _convert_lists(self, text: str) -> str:
        """Convert Markdown lists to Jira lists; two spaces of indent nest one level."""

        def nesting(indent: str) -> int:
            return len(indent.replace("\t", "  ")) // 2 + 1

        def replace_unordered_list(match: re.Match[str]) -> str:
            return f"{'*' * nesting(match.group(1))} {match.group(2)}"

        def replace_ordered_list(match: re.Match[str]) -> str:
            return f"{'#' * nesting(match.group(1))} {match.group(2)}"

        text = self.unordered_list_pattern.sub(replace_unordered_list, text)
        return self.ordered_list_pattern.sub(replace_ordered_list, text)

    def _convert_block_quotes(self, text: str) -> str:
        """Convert > quotes; consecutive quoted lines become one {quote} block."""
        lines = text.split("\n")
        result: list[str] = []
        quoted: list[str] = []

        def flush() -> None:
            if len(quoted) == 1:
                result.append(f"bq. {quoted[0]}")
            elif quoted:
                result.extend(["{quote}", *quoted, "{quote}"])
            quoted.clear()

        for line in lines:
            match = self.blockquote_pattern.match(line)
            if match:
                quoted.append(match.group(1))
                continue
            flush()
            result.append(line)
        flush()
        return "\n".join(result)

    def _convert_images(self, text: str) -> str:
        """Convert ![alt](src) to !src!."""
        return self.image_pattern.sub(r"!\2!", text)

    def _convert_links(self, text: str) -> str:
        """Convert [title](url) and <url> to Jira links."""

        def replace_link(match: re.Match[str]) -> str:
            title = match.group(1).strip()
            url = match.group(2).strip()
            if title == url:
                return f"[{url}]"
            return f"[{title}|{url}]"

        text = self.link_pattern.sub(replace_link, text)
        return self.autolink_pattern.sub(r"[\1]", text)

    def _convert_horizontal_rules(self, text: str) -> str:
        return self.hr_pattern.sub("----", text)

    def _convert_tables(self, text: str) -> str:
        """Convert pipe tables; the row above the separator becomes the header."""
        lines = text.split("\n")
        result: list[str] = []
        i = 0
        while i < len(lines):
            line = lines[i]
            is_table_start = (
                "|" in line
                and i + 1 < len(lines)
                and self.table_separator_pattern.match(lines[i + 1].strip())
            )
            if not is_table_start:
                result.append(line)
                i += 1
                continue

            result.append("||" + "||".join(self._table_cells(line)) + "||")
            i += 2
            while i < len(lines) and "|" in lines[i] and lines[i].strip():
                result.append("|" + "|".join(self._table_cells(lines[i])) + "|")
                i += 1
        return "\n".join(result)

    def _table_cells(self, row: str) -> list[str]:
        row = row.strip()
        if row.startswith("|"):
            row = row[1:]
        if row.endswith("|"):
            row = row[:-1]
        return [cell.strip() for cell in row.split("|")]

    def _cleanup_whitespace(self, text: str) -> str:
        """Clean up excessive whitespace and line breaks."""
        text = re.sub(r"\n{3,}", "\n\n", text)
        lines = [line.rstrip() for line in text.split("\n")]
        return "\n".join(lines).strip("\n")


_default_converter: JiraMarkupConverter | None = None


def to_jira_markup(markdown: str | None) -> str:
    """Convert Markdown to Jira wiki markup with a shared converter."""
    global _default_converter
    if _default_converter is None:
        _default_converter = JiraMarkupConverter()
    return _default_converter.convert(markdown)
