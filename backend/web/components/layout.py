"""
Layout component: wraps page content into a complete HTML document.
"""

from typing import Optional

from .base import Component


class Layout(Component):
    """Main layout component that assembles the complete page."""

    def __init__(
        self,
        title: str,
        content: str,
        *,
        site_name: str = "Preowned Clothing",
        admin: bool = False,
        current_path: str = "/",
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            site_name: Site name shown in the header and <title>
            admin: Whether to render the admin navigation
            current_path: Current URL path for active navigation highlighting
        """
        self.title = title
        self.content = content
        self.site_name = site_name
        self.admin = admin
        self.current_path = current_path

    def render(self) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    {self._render_head()}
</head>
<body>
    <a href="#main-content" class="skip-link">Skip to main content</a>
    {self._render_header()}
    <main id="main-content" class="main-content" role="main">
        {self.content}
    </main>
</body>
</html>"""

    def _render_head(self) -> str:
        return f"""
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - {self.escape(self.site_name)}</title>
    <link rel="stylesheet" href="/static/css/preowned.css?v=1">
    """

    def _render_header(self) -> str:
        nav = ""
        if self.admin:
            links = [("/admin", "Submissions"), ("/admin/export?format=csv", "Export CSV"), ("/admin/export?format=json", "Export JSON")]
            items = "".join(
                f'<li><a {self.attributes(href=href, class_=self.classes("nav-link", active=self._is_active(href)))}>{self.escape(label)}</a></li>'
                for href, label in links
            )
            nav = f'<nav aria-label="Admin"><ul class="nav-list">{items}</ul></nav>'
        return (
            '<header class="site-header" role="banner">'
            f'<a class="site-title" href="/">{self.escape(self.site_name)}</a>'
            f"{nav}"
            "</header>"
        )

    def _is_active(self, href: str) -> bool:
        path = href.split("?", 1)[0]
        return self.current_path == path
