"""
Markup Node Interface
Layout Translator

Typed view over a parsed markup tree. The extractor and the reinsertion
engine only talk to MarkupNode; SoupNode backs it with BeautifulSoup.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag


class MarkupNode(ABC):
    """A node of a structural document tree."""

    @property
    @abstractmethod
    def tag_name(self) -> Optional[str]:
        """Lower-case element name, None for text nodes."""
        pass

    @property
    @abstractmethod
    def is_text(self) -> bool:
        """Whether this node is a text run."""
        pass

    @abstractmethod
    def children(self) -> List["MarkupNode"]:
        """Direct children in document order (elements and text runs)."""
        pass

    @abstractmethod
    def text_content(self) -> str:
        """Concatenated text of the node and its descendants."""
        pass

    @abstractmethod
    def inner_markup(self) -> str:
        """Serialized markup of the node's children."""
        pass

    @abstractmethod
    def set_inner_markup(self, markup: str) -> None:
        """Replace the node's children with parsed markup."""
        pass

    @abstractmethod
    def attribute(self, name: str) -> Optional[str]:
        """Attribute value as written in the source, None if absent."""
        pass

    @abstractmethod
    def set_text(self, text: str) -> None:
        """Replace the text of a text run."""
        pass

    def text_runs(self) -> List["MarkupNode"]:
        """Text-run descendants in document order."""
        runs: List[MarkupNode] = []
        for child in self.children():
            if child.is_text:
                runs.append(child)
            else:
                runs.extend(child.text_runs())
        return runs


class SoupNode(MarkupNode):
    """MarkupNode backed by a bs4 Tag or NavigableString."""

    def __init__(self, element):
        self._element = element

    @property
    def element(self):
        return self._element

    @property
    def tag_name(self) -> Optional[str]:
        if isinstance(self._element, Tag):
            return self._element.name.lower()
        return None

    @property
    def is_text(self) -> bool:
        return isinstance(self._element, NavigableString)

    def children(self) -> List[MarkupNode]:
        if not isinstance(self._element, Tag):
            return []
        nodes = []
        for child in self._element.children:
            # Comments, doctypes and CDATA are NavigableString subclasses
            if isinstance(child, Tag) or type(child) is NavigableString:
                nodes.append(SoupNode(child))
        return nodes

    def text_content(self) -> str:
        if self.is_text:
            return str(self._element)
        return "".join(
            str(s) for s in self._element.find_all(string=True)
            if type(s) is NavigableString
        )

    def inner_markup(self) -> str:
        if self.is_text:
            return str(self._element)
        return self._element.decode_contents()

    def set_inner_markup(self, markup: str) -> None:
        if self.is_text:
            self.set_text(markup)
            return
        self._element.clear()
        fragment = BeautifulSoup(markup, "html.parser")
        for child in list(fragment.contents):
            self._element.append(child.extract())

    def attribute(self, name: str) -> Optional[str]:
        if not isinstance(self._element, Tag):
            return None
        value = self._element.get(name)
        if isinstance(value, list):
            # multi-valued attributes such as class come back split
            return " ".join(value)
        return value

    def set_text(self, text: str) -> None:
        if not self.is_text:
            raise TypeError(f"<{self.tag_name}> is not a text run")
        replacement = NavigableString(text)
        self._element.replace_with(replacement)
        self._element = replacement

    def __repr__(self) -> str:
        if self.is_text:
            return f"<SoupNode text={str(self._element)[:20]!r}>"
        return f"<SoupNode <{self.tag_name}>>"


class MarkupDocument:
    """Parsed markup document with a typed root node."""

    def __init__(self, markup: str, parser: str = "html.parser"):
        self._soup = BeautifulSoup(markup, parser)
        self.root: MarkupNode = SoupNode(self._soup)

    def render(self) -> str:
        """Serialize the (possibly modified) tree back to markup."""
        return str(self._soup)


def parse_markup(markup: str) -> MarkupDocument:
    return MarkupDocument(markup)
