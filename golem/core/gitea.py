"""Gitea issue and pull request API client."""

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from golem.core.config import GiteaConfig
from golem.core.errors import RemoteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Gitea"

MERGE_STYLES = ("merge", "rebase", "squash")
PAGE_SIZE = 50


class GiteaClient:
    """Talk to the Gitea v1 REST API."""

    def __init__(self, base_url: str, token: str, org: str, timeout: Optional[float] = None):
        """
        Initialize the client.

        Args:
            base_url: Gitea instance URL (e.g., "https://git.example.com")
            token: Access token
            org: Organization used for repository names without an owner
            timeout: Optional per-request timeout in seconds
        """
        self.base_url = f"{base_url.rstrip('/')}/api/v1"
        self.default_org = org
        self.timeout = timeout

        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"token {token}",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_env(cls) -> "GiteaClient":
        """
        Create client from environment variables.

        Raises:
            ConfigError: If GITEA_URL, GITEA_TOKEN or GITEA_ORG is unset
        """
        config = GiteaConfig.from_env()
        return cls(config.base_url, config.token, config.org)

    def _request(
        self,
        method: str,
        endpoint: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        url = f"{self.base_url}{endpoint}"
        logger.debug("%s %s", method, url)

        try:
            response = self._session.request(
                method, url, json=body, params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise RemoteError(SERVICE_NAME, None, str(e))

        if not response.ok:
            raise RemoteError(SERVICE_NAME, response.status_code, response.text)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def repo_path(self, repo: str) -> str:
        """Qualify a bare repository name with the default organization."""
        if "/" not in repo:
            return f"{self.default_org}/{repo}"
        return repo

    # Issues

    def get_issue(self, repo: str, number: int) -> Dict[str, Any]:
        return self._request("GET", f"/repos/{self.repo_path(repo)}/issues/{number}")

    def list_issues(
        self,
        repo: str,
        state: Optional[str] = None,
        labels: Optional[List[str]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        List issues for a repository (pull requests excluded).

        Args:
            repo: Repository name or owner/name
            state: "open", "closed" or "all"
            labels: Only issues carrying these labels
            page: 1-based page number
            limit: Page size

        Returns:
            List of issues
        """
        params: Dict[str, Any] = {"type": "issues"}
        if state:
            params["state"] = state
        if labels:
            params["labels"] = ",".join(labels)
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit

        return self._request("GET", f"/repos/{self.repo_path(repo)}/issues", params=params) or []

    def create_issue(
        self,
        repo: str,
        title: str,
        body: str,
        labels: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        """
        Create an issue.

        Args:
            repo: Repository name or owner/name
            title: Issue title
            body: Issue body (markdown)
            labels: Optional label IDs

        Returns:
            Created issue data
        """
        payload: Dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels
        return self._request("POST", f"/repos/{self.repo_path(repo)}/issues", payload)

    def update_issue(self, repo: str, number: int, updates: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PATCH", f"/repos/{self.repo_path(repo)}/issues/{number}", updates)

    def add_issue_comment(self, repo: str, number: int, body: str) -> None:
        self._request("POST", f"/repos/{self.repo_path(repo)}/issues/{number}/comments", {"body": body})

    def close_issue(self, repo: str, number: int) -> Dict[str, Any]:
        return self.update_issue(repo, number, {"state": "closed"})

    def find_issue_by_ticket_id(self, repo: str, ticket_id: str) -> Optional[Dict[str, Any]]:
        """
        Find an issue that references a display ticket ID in its title or body.

        Args:
            repo: Repository name or owner/name
            ticket_id: Display ticket ID (e.g., "INC-1234")

        Returns:
            The first matching issue, or None
        """
        # INC-12 must not match INC-123
        pattern = re.compile(rf"(?<![\w-]){re.escape(ticket_id)}(?!\d)", re.IGNORECASE)

        page = 1
        while True:
            issues = self.list_issues(repo, state="all", page=page, limit=PAGE_SIZE)
            for issue in issues:
                if pattern.search(issue.get("title") or "") or pattern.search(issue.get("body") or ""):
                    return issue
            # Servers may cap the page below PAGE_SIZE, so only an empty page ends the scan
            if not issues:
                return None
            page += 1

    # Pull requests

    def get_pull_request(self, repo: str, number: int) -> Dict[str, Any]:
        return self._request("GET", f"/repos/{self.repo_path(repo)}/pulls/{number}")

    def create_pull_request(
        self,
        repo: str,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> Dict[str, Any]:
        """
        Create a pull request.

        Args:
            repo: Repository name or owner/name
            title: PR title
            body: PR body
            head: Source branch
            base: Target branch

        Returns:
            Pull request data
        """
        payload = {"title": title, "body": body, "head": head, "base": base}
        return self._request("POST", f"/repos/{self.repo_path(repo)}/pulls", payload)

    def merge_pull_request(
        self,
        repo: str,
        number: int,
        style: str = "squash",
        title: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        """
        Merge a pull request.

        Args:
            repo: Repository name or owner/name
            number: PR number
            style: One of "merge", "rebase" or "squash"
            title: Optional merge commit title
            message: Optional merge commit message
        """
        if style not in MERGE_STYLES:
            raise ValueError(f"Unknown merge style {style!r}; expected one of {', '.join(MERGE_STYLES)}")

        payload: Dict[str, Any] = {"Do": style}
        if title:
            payload["MergeTitleField"] = title
        if message:
            payload["MergeMessageField"] = message
        self._request("POST", f"/repos/{self.repo_path(repo)}/pulls/{number}/merge", payload)

    # Repositories

    def list_org_repos(self) -> List[Dict[str, Any]]:
        return self._request("GET", f"/orgs/{self.default_org}/repos") or []

    def get_repo(self, repo: str) -> Dict[str, Any]:
        return self._request("GET", f"/repos/{self.repo_path(repo)}")
