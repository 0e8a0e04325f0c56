from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Plain-data views of the page that the host (browser bridge, test) hands to
# the tracker. Nothing here touches a real DOM.


@dataclass
class FormField:
    name: str
    value: str = ""
    type: str = "text"
    id: str = ""


@dataclass
class FormSnapshot:
    id: str = ""
    fields: List[FormField] = field(default_factory=list)
    submit_text: Optional[str] = None
    # mirrors element.dataset; holds the attach marker
    dataset: Dict[str, str] = field(default_factory=dict)
    name: str = ""
    action: str = ""

    def values(self) -> Dict[str, str]:
        """FormData-style mapping. Later duplicates win, as with FormData iteration into an object."""
        out: Dict[str, str] = {}
        for f in self.fields:
            if f.name:
                out[f.name] = f.value
        return out

    def find(self, *, name: Optional[str] = None, id: Optional[str] = None) -> Optional[FormField]:
        for f in self.fields:
            if name is not None and f.name == name:
                return f
            if id is not None and f.id == id:
                return f
        return None

    def is_contact_form(self) -> bool:
        return "form1" in self.name or "contact" in self.action


@dataclass
class ModalContext:
    """The currently shown enquiry modal and the element that opened it."""

    title: str = ""
    trigger_title: str = ""
    trigger_enquiry: str = ""


@dataclass
class ClickTarget:
    tag: str = "button"
    classes: List[str] = field(default_factory=list)
    text: str = ""
    href: str = ""
    onclick: str = ""

    def is_button_like(self) -> bool:
        return (
            self.tag.lower() == "button"
            or "btn" in self.classes
            or "tel:" in self.href
            or "mailto:" in self.href
        )

    def is_brochure_link(self) -> bool:
        return (self.tag.lower() == "a" and "brochure" in self.href) or (
            self.tag.lower() == "button" and "brochure" in self.onclick
        )
