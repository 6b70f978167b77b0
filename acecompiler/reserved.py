"""Built-in element vocabulary that component names may not shadow."""

from __future__ import annotations

RESERVED_TAGS = frozenset(
    {
        "badge",
        "block",
        "button",
        "calendar",
        "camera",
        "canvas",
        "chart",
        "circle",
        "clock",
        "dialog",
        "div",
        "divider",
        "element",
        "ellipse",
        "form",
        "grid-col",
        "grid-container",
        "grid-row",
        "image",
        "image-animator",
        "input",
        "label",
        "line",
        "list",
        "list-item",
        "list-item-group",
        "marquee",
        "menu",
        "navigation-bar",
        "option",
        "panel",
        "path",
        "piece",
        "picker",
        "picker-view",
        "polygon",
        "polyline",
        "popup",
        "progress",
        "qrcode",
        "rating",
        "rect",
        "refresh",
        "richtext",
        "search",
        "select",
        "slider",
        "slot",
        "span",
        "stack",
        "stepper",
        "stepper-item",
        "svg",
        "swiper",
        "switch",
        "tab-bar",
        "tab-content",
        "tabs",
        "text",
        "textarea",
        "toggle",
        "toolbar",
        "toolbar-item",
        "tspan",
        "video",
        "web",
        "xcomponent",
    }
)


class ReservedNameError(ValueError):
    """Raised when a page is named after a built-in element."""

    def __init__(self, name: str) -> None:
        super().__init__(f"The file name cannot contain reserved tag name: {name}")
        self.name = name


def is_reserved_tag(name: str) -> bool:
    return name in RESERVED_TAGS


__all__ = ["RESERVED_TAGS", "ReservedNameError", "is_reserved_tag"]
