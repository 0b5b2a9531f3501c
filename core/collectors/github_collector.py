from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from config.models import RepositoryConfig
from core.contracts.models import ChangeSetRecord, FileDelta
from core.contracts.source import ChangeSetSource
from core.registry import source_registry
from utils.errors import CollectorError, ConfigError
from utils.logger import logger

# GitHub reports a few statuses beyond the four change kinds we model.
GITHUB_STATUS_ALIASES = {
    "copied": "added",
    "changed": "modified",
    "unchanged": "modified",
}


@source_registry.register("github")
class GitHubChangeSetSource(ChangeSetSource):
    """
    Lists merged pull requests and their files through the GitHub REST API.
    """

    def __init__(self, config: RepositoryConfig, client: Optional[httpx.AsyncClient] = None):
        if not config.owner or not config.name:
            raise ConfigError(
                "GitHub repository not configured. Set `repository.repository` to 'owner/name' "
                "or export GITHUB_REPOSITORY."
            )
        self.config = config

        headers = {"Accept": "application/vnd.github+json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        else:
            logger.warning("No GitHub token configured. Making unauthenticated requests to the GitHub API.")

        self._client = client or httpx.AsyncClient(
            base_url=config.api_url,
            headers=headers,
            timeout=config.timeout_sec,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.name}"

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise CollectorError(f"Request to GitHub timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise CollectorError(
                f"GitHub API returned error: {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.RequestError as e:
            raise CollectorError(f"Failed to request GitHub API: {e}") from e
        except ValueError as e:
            raise CollectorError(f"GitHub API returned a non-JSON body for {url}: {e}") from e

    @staticmethod
    def _expect_list(payload: Any, what: str) -> List[Dict[str, Any]]:
        if not isinstance(payload, list):
            raise CollectorError(f"Expected a list of {what}, got {type(payload).__name__}.")
        return payload

    async def list_closed_change_sets(self, per_page: int = 10) -> List[ChangeSetRecord]:
        """
        Calls `GET /repos/{owner}/{repo}/pulls` for closed pull requests, most recently updated first.
        """
        payload = await self._get(
            f"{self._repo_path}/pulls",
            params={"state": "closed", "sort": "updated", "direction": "desc", "per_page": per_page},
        )
        try:
            return [
                ChangeSetRecord(
                    id=pr["number"],
                    title=pr["title"],
                    description=pr.get("body"),
                    merged_at=pr.get("merged_at"),
                )
                for pr in self._expect_list(payload, "pull requests")
            ]
        except (KeyError, TypeError, ValidationError) as e:
            raise CollectorError(f"Malformed pull request payload: {e}") from e

    async def list_file_deltas(self, change_set_id: int) -> List[FileDelta]:
        """
        Calls `GET /repos/{owner}/{repo}/pulls/{number}/files`.
        """
        payload = await self._get(f"{self._repo_path}/pulls/{change_set_id}/files")
        try:
            return [
                FileDelta(
                    path=entry["filename"],
                    status=GITHUB_STATUS_ALIASES.get(entry["status"], entry["status"]),
                    additions=entry.get("additions", 0),
                    deletions=entry.get("deletions", 0),
                )
                for entry in self._expect_list(payload, "files")
            ]
        except (KeyError, TypeError, ValidationError) as e:
            raise CollectorError(f"Malformed file payload for pull request #{change_set_id}: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
