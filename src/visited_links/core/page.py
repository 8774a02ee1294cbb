"""
Page model: an HTML document the highlighter scans and decorates.

Wraps a BeautifulSoup tree and exposes the few document facilities the page
side relies on: a marker class, a root style property, mutation observers,
visibility state and click dispatch.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

MARKER_CLASS = "vlh-visited"
COLOR_PROPERTY = "--vlh-text-color"

VISIBLE = "visible"
HIDDEN = "hidden"


@dataclass
class MutationRecord:
    added_nodes: List[Tag] = field(default_factory=list)
    removed_nodes: List[Tag] = field(default_factory=list)


class MutationObserver:
    """Receives batches of mutation records until disconnected."""

    def __init__(self, page: "PageDocument", callback: Callable[[List[MutationRecord]], None]):
        self.page = page
        self.callback = callback
        self.connected = True

    def disconnect(self):
        if self.connected:
            self.connected = False
            self.page._observers.remove(self)


class PageDocument:
    """An HTML page addressed by ``url``."""

    def __init__(self, html: str, url: str, parser: str = "html.parser"):
        self.url = url
        self.soup = BeautifulSoup(html, parser)
        self.visibility_state = VISIBLE
        self._observers: List[MutationObserver] = []
        self._visibility_listeners: List[Callable[[str], None]] = []
        self._click_listeners: List[Callable[[Tag], None]] = []

    @property
    def base_url(self) -> str:
        base = self.soup.find("base", href=True)
        if base is not None:
            return urljoin(self.url, base["href"].strip())
        return self.url

    @property
    def root(self) -> Tag:
        return self.soup.find("html") or self.soup

    @property
    def body(self) -> Tag:
        return self.soup.find("body") or self.root

    def anchors(self, root: Optional[Tag] = None) -> List[Tag]:
        return (root or self.soup).find_all("a", href=True)

    # Marker class

    def add_marker(self, element: Tag):
        classes = list(element.get("class") or [])
        if MARKER_CLASS not in classes:
            element["class"] = classes + [MARKER_CLASS]

    def remove_marker(self, element: Tag):
        classes = [c for c in (element.get("class") or []) if c != MARKER_CLASS]
        if classes:
            element["class"] = classes
        elif element.has_attr("class"):
            del element["class"]

    def has_marker(self, element: Tag) -> bool:
        return MARKER_CLASS in (element.get("class") or [])

    def marked_elements(self) -> List[Tag]:
        return self.soup.find_all(class_=MARKER_CLASS)

    # Root style

    def style_properties(self) -> dict:
        properties = {}
        for declaration in (self.root.get("style") or "").split(";"):
            name, sep, value = declaration.partition(":")
            if sep and name.strip():
                properties[name.strip()] = value.strip()
        return properties

    def set_style_property(self, name: str, value: str):
        properties = self.style_properties()
        properties[name] = value
        self.root["style"] = "; ".join(f"{k}: {v}" for k, v in properties.items()) + ";"

    # Mutations

    def observe(self, callback: Callable[[List[MutationRecord]], None]) -> MutationObserver:
        observer = MutationObserver(self, callback)
        self._observers.append(observer)
        return observer

    def _notify(self, record: MutationRecord):
        for observer in list(self._observers):
            observer.callback([record])

    def insert_html(self, html: str, parent: Optional[Tag] = None) -> List[Tag]:
        """Append markup under ``parent`` (default body) and notify observers."""
        parent = parent or self.body
        fragment = BeautifulSoup(html, "html.parser")
        added = []
        for node in list(fragment.contents):
            parent.append(node.extract())
            if isinstance(node, Tag):
                added.append(node)
        self._notify(MutationRecord(added_nodes=added))
        return added

    def remove_element(self, element: Tag):
        element.extract()
        self._notify(MutationRecord(removed_nodes=[element]))

    # Visibility and clicks

    def on_visibility_change(self, listener: Callable[[str], None]):
        self._visibility_listeners.append(listener)

    def set_visibility(self, state: str):
        if state not in (VISIBLE, HIDDEN):
            raise ValueError(f"Unknown visibility state: {state}")
        if state == self.visibility_state:
            return
        self.visibility_state = state
        for listener in list(self._visibility_listeners):
            listener(state)

    def on_click(self, listener: Callable[[Tag], None]):
        self._click_listeners.append(listener)

    def click(self, element: Tag):
        """Dispatch a click on ``element`` to every registered listener."""
        for listener in list(self._click_listeners):
            listener(element)

    def render(self) -> str:
        return str(self.soup)
