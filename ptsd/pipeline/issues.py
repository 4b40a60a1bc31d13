"""Registry of recurring environment problems and their fixes."""

from __future__ import annotations

from typing import Optional

from ptsd.errors import UserError, ValidationError
from ptsd.models import Issue, IssueCategory
from ptsd.store import ProjectStore


def parse_category(text: str) -> IssueCategory:
    try:
        return IssueCategory((text or "").strip().lower())
    except ValueError:
        valid = "|".join(c.value for c in IssueCategory)
        raise UserError(f"invalid category {text!r}: must be {valid}")


class IssueRegistry:
    """Add, list and remove entries of .ptsd/issues.yaml."""

    def __init__(self, store: ProjectStore) -> None:
        self.store = store

    def add(self, issue_id: str, category: str, summary: str, fix: str) -> Issue:
        """
        Raises:
            UserError: Empty ID, summary or fix, or an unknown category.
            ValidationError: The ID already exists.
        """
        if not (issue_id or "").strip():
            raise UserError("issue id required")
        issue_category = parse_category(category)
        if not (summary or "").strip():
            raise UserError("summary required")
        if not (fix or "").strip():
            raise UserError("fix required")

        issues = self.store.load_issues()
        if any(i.id == issue_id for i in issues):
            raise ValidationError(f"issue {issue_id} already exists")

        issue = Issue(id=issue_id, category=issue_category, summary=summary.strip(), fix=fix.strip())
        issues.append(issue)
        self.store.save_issues(issues)
        if self.store.logger:
            self.store.logger.info("issue_added", {"issue": issue_id, "category": issue_category.value})
        return issue

    def list(self, category: Optional[str] = None) -> list[Issue]:
        issues = self.store.load_issues()
        if category is None:
            return issues
        wanted = parse_category(category)
        return [i for i in issues if i.category == wanted]

    def remove(self, issue_id: str) -> None:
        """
        Raises:
            ValidationError: No issue with that ID.
        """
        issues = self.store.load_issues()
        remaining = [i for i in issues if i.id != issue_id]
        if len(remaining) == len(issues):
            raise ValidationError(f"issue {issue_id} not found")
        self.store.save_issues(remaining)
        if self.store.logger:
            self.store.logger.info("issue_removed", {"issue": issue_id})
