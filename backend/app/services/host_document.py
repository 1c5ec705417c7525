"""
Read-only view of the host page the frame is embedded in.

Only what the handshake needs from the DOM is kept: element ids and
attributes in document order, plus a `dataset` view of the `data-*`
attributes.
"""

from html.parser import HTMLParser
from typing import Optional, Dict, List


class Element:
    """A parsed start tag with its attributes"""

    def __init__(self, tag: str, attrs: Dict[str, str]):
        self.tag = tag
        self.attrs = attrs

    @property
    def id(self) -> Optional[str]:
        return self.attrs.get("id")

    @property
    def dataset(self) -> Dict[str, str]:
        """data-project-id -> projectId, like the DOM dataset API"""
        result = {}
        for name, value in self.attrs.items():
            if not name.startswith("data-"):
                continue
            parts = name[5:].split("-")
            key = parts[0] + "".join(p[:1].upper() + p[1:] for p in parts[1:])
            result[key] = value
        return result

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, id={self.id!r})"


class _ElementCollector(HTMLParser):

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.elements: List[Element] = []

    def handle_starttag(self, tag, attrs):
        # Valueless attributes arrive as None
        values = {name.lower(): (value or "").strip() for name, value in attrs}
        self.elements.append(Element(tag, values))

    def handle_startendtag(self, tag, attrs):
        self.handle_starttag(tag, attrs)


class HostDocument:
    """Element index built once from the host page HTML"""

    def __init__(self, elements: List[Element]):
        self.elements = elements

    @classmethod
    def parse(cls, html: str) -> "HostDocument":
        collector = _ElementCollector()
        collector.feed(html or "")
        collector.close()
        return cls(collector.elements)

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def query_selector_attr(self, attr_name: str) -> Optional[Element]:
        """First element in document order carrying `attr_name`, i.e. `[attr_name]`"""
        for element in self.elements:
            if attr_name in element.attrs:
                return element
        return None
