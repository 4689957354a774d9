"""
Admin components: filter bar, submissions table, pagination and detail view.

Every mutating control is a small POST form carrying a fresh one-shot token
(`csrf_token`) minted by the route that renders it.
"""

from typing import Callable, Mapping, Optional, Sequence
from urllib.parse import urlencode

from .base import Component

STATUS_CHOICES = (("pending", "Pending"), ("contacted", "Contacted"), ("completed", "Completed"))


class FilterBar(Component):
    def __init__(self, *, search: str, status: str, category: str, categories: Sequence[str]) -> None:
        self.search = search
        self.status = status
        self.category = category
        self.categories = categories

    def render(self) -> str:
        status_opts = ['<option value="">All statuses</option>'] + [
            f'<option {self.attributes(value=v, selected=(v == self.status))}>{self.escape(label)}</option>'
            for v, label in STATUS_CHOICES
        ]
        cat_opts = ['<option value="">All categories</option>'] + [
            f'<option {self.attributes(value=c, selected=(c == self.category))}>{self.escape(c)}</option>'
            for c in self.categories
        ]
        return f"""
        <form method="get" action="/admin" class="admin-filters" role="search">
            <input {self.attributes(type="search", name="s", value=self.search, placeholder="Search name, email, description", aria_label="Search")}>
            <select name="status" aria-label="Status">{''.join(status_opts)}</select>
            <select name="category" aria-label="Category">{''.join(cat_opts)}</select>
            <button type="submit" class="btn">Filter</button>
        </form>
        """


class SubmissionTable(Component):
    """List view with bulk actions; `token_for()` mints one token per form."""

    def __init__(self, rows: Sequence[Mapping], *, token_for: Callable[[], str]) -> None:
        self.rows = rows
        self.token_for = token_for

    def render(self) -> str:
        if not self.rows:
            return '<p class="empty-state">No submissions found.</p>'
        body = "".join(self._row(r) for r in self.rows)
        return f"""
        <form method="post" action="/admin/bulk" class="bulk-form">
            <input type="hidden" name="csrf_token" value="{self.escape(self.token_for())}">
            <div class="bulk-actions">
                <select name="action" aria-label="Bulk action">
                    <option value="">Bulk actions</option>
                    <option value="mark_contacted">Mark as contacted</option>
                    <option value="mark_completed">Mark as completed</option>
                    <option value="delete">Delete</option>
                </select>
                <label><input type="checkbox" name="confirm" value="1"> Confirm</label>
                <button type="submit" class="btn">Apply</button>
            </div>
            <table class="submissions-table">
                <thead><tr><th></th><th>Date</th><th>Name</th><th>Email</th><th>Items</th><th>Category</th><th>Status</th></tr></thead>
                <tbody>{body}</tbody>
            </table>
        </form>
        """

    def _row(self, r: Mapping) -> str:
        sid = str(r.get("id"))
        date = str(r.get("submission_date") or "")[:16].replace("T", " ")
        return (
            "<tr>"
            f'<td><input {self.attributes(type="checkbox", name="ids", value=sid, aria_label="Select")}></td>'
            f"<td>{self.escape(date)}</td>"
            f'<td><a href="/admin/submissions/{self.escape(sid)}">{self.escape(r.get("name"))}</a></td>'
            f"<td>{self.escape(r.get('email'))}</td>"
            f"<td>{self.escape(r.get('item_count'))}</td>"
            f"<td>{self.escape(r.get('primary_category') or '')}</td>"
            f'<td><span class="status-{self.escape(r.get("status"))}">{self.escape(r.get("status_label"))}</span></td>'
            "</tr>"
        )


class Pagination(Component):
    def __init__(self, *, page: int, pages: int, total: int, params: Mapping[str, str]) -> None:
        self.page = page
        self.pages = pages
        self.total = total
        self.params = {k: v for k, v in params.items() if v}

    def _href(self, page: int) -> str:
        return "/admin?" + urlencode({**self.params, "paged": page})

    def render(self) -> str:
        prev_link = f'<a href="{self.escape(self._href(self.page - 1))}" rel="prev">Previous</a>' if self.page > 1 else ""
        next_link = f'<a href="{self.escape(self._href(self.page + 1))}" rel="next">Next</a>' if self.page < self.pages else ""
        return (
            '<nav class="pagination" aria-label="Pagination">'
            f"<span>{self.total} submissions, page {self.page} of {self.pages}</span> {prev_link} {next_link}"
            "</nav>"
        )


class SubmissionDetail(Component):
    def __init__(self, submission: Mapping, *, token_for: Callable[[], str], message: Optional[str] = None) -> None:
        self.s = submission
        self.token_for = token_for
        self.message = message

    def _post(self, action: str, label: str, *, extra: str = "", confirm: bool = False) -> str:
        confirm_html = '<label><input type="checkbox" name="confirm" value="1" required> Confirm</label>' if confirm else ""
        return (
            f'<form method="post" action="{self.escape(action)}" class="inline-form">'
            f'<input type="hidden" name="csrf_token" value="{self.escape(self.token_for())}">'
            f"{extra}{confirm_html}<button type=\"submit\" class=\"btn\">{self.escape(label)}</button></form>"
        )

    def render(self) -> str:
        s = self.s
        sid = str(s.get("id"))
        base = f"/admin/submissions/{sid}"
        contact = "".join(
            f"<dt>{self.escape(label)}</dt><dd>{self.escape(s.get(key) or '')}</dd>"
            for key, label in (
                ("name", "Name"), ("email", "Email"), ("phone", "Phone"), ("address", "Address"),
                ("city", "City"), ("state", "State"), ("zip", "ZIP"), ("submission_date", "Date"),
            )
        )
        items = "".join(self._item(i) for i in s.get("items", []))
        notes_form = self._post(
            f"{base}/notes",
            "Save Notes",
            extra=f'<textarea name="notes" rows="4" aria-label="Notes">{self.escape(s.get("notes") or "")}</textarea>',
        )
        message_html = f'<div class="notice" role="status">{self.escape(self.message)}</div>' if self.message else ""
        return f"""
        <section class="submission-detail">
            {message_html}
            <h1>Submission from {self.escape(s.get("name"))}</h1>
            <p>Status: <span class="status-{self.escape(s.get("status"))}">{self.escape(s.get("status_label"))}</span></p>
            <div class="status-actions">
                {self._post(f"{base}/status", "Mark as contacted", extra='<input type="hidden" name="status" value="contacted">')}
                {self._post(f"{base}/status", "Mark as completed", extra='<input type="hidden" name="status" value="completed">')}
                {self._post(f"{base}/delete", "Delete submission", confirm=True)}
            </div>
            <dl class="contact">{contact}</dl>
            <h2>Notes</h2>
            {notes_form}
            <h2>Items ({len(s.get("items", []))})</h2>
            {items}
        </section>
        """

    def _item(self, item: Mapping) -> str:
        images = "".join(
            f'<figure><a href="{self.escape(url)}"><img src="{self.escape(url)}" alt="{self.escape(slot)}" loading="lazy"></a>'
            f"<figcaption>{self.escape(slot.replace('_', ' '))}</figcaption></figure>"
            for slot, url in (item.get("images") or {}).items()
        )
        delete_form = self._post(
            f"/admin/items/{item.get('id')}/delete",
            "Delete item",
            extra=f'<input type="hidden" name="submission_id" value="{self.escape(item.get("submission_id"))}">',
            confirm=True,
        )
        return f"""
            <article class="item">
                <h3>{self.escape(item.get("category_text"))}</h3>
                <p>Size: {self.escape(item.get("size") or "Not specified")}</p>
                <p class="description">{self.escape(item.get("description"))}</p>
                <div class="item-images">{images}</div>
                {delete_form}
            </article>
        """
