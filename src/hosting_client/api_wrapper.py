"""API wrapper for the git-hosting REST API.

This module wraps a requests session and provides error translation from
HTTP responses to our typed exception hierarchy. It integrates with the
retry logic for handling rate limits and keeps two short-lived per-instance
caches (authenticated identity, branch existence) to cut redundant calls.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from .auth import Authenticator
from .encoding import decode_content, encode_content
from .errors import (
    APIAccessError,
    APIUnreachableError,
    ConflictError,
    ContentDecodeError,
    InvalidCredentialsError,
    MergeConflictError,
)
from .models import (
    Branch,
    BranchExistenceEntry,
    CancellationToken,
    Clock,
    FileBlob,
    Identity,
    RepositoryRef,
)
from .retry_logic import RateLimitedError, retry_on_rate_limit

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


def sanitize_credentials(text: str) -> str:
    """Sanitize error messages to prevent credential leakage.

    Masks Authorization headers, bearer tokens, token fields and
    hosting-issued token literals before text is logged or raised.

    Args:
        text: The error message or log text to sanitize

    Returns:
        str: Sanitized text with credentials masked

    Example:
        >>> sanitize_credentials("Authorization: Bearer ghp_abc123")
        'Authorization: ***REDACTED***'
    """
    if not text:
        return text

    sanitized = text

    # 1. Mask passwords in URLs (user:pass@host)
    sanitized = re.sub(r'://([\w.-]+):([\w.-]+)@', r'://***:***@', sanitized)

    # 2. Mask Authorization headers
    sanitized = re.sub(
        r'Authorization:\s*[^\n\r]+',
        'Authorization: ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    # 3. Mask Bearer tokens
    sanitized = re.sub(
        r'Bearer\s+[^\s\n\r]+',
        'Bearer ***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    # 4. Mask token field values (access_token=xyz, token: "xyz")
    sanitized = re.sub(
        r'((?:access_|api_)?token)["\']?\s*[:=]\s*["\']?([^"\'\s&]+)',
        r'\1=***REDACTED***',
        sanitized,
        flags=re.IGNORECASE
    )

    # 5. Mask hosting-issued token literals (ghp_, gho_, ghs_, github_pat_)
    sanitized = re.sub(
        r'\b(?:gh[pousr]_[A-Za-z0-9]{8,}|github_pat_[A-Za-z0-9_]{8,})\b',
        '***REDACTED***',
        sanitized
    )

    return sanitized


class HostingClient:
    """Thin wrapper over the git-hosting REST API with error translation.

    This class:
    1. Authenticates every request with the caller's bearer credential
    2. Translates HTTP status codes to typed exceptions
    3. Retries rate-limited requests with exponential backoff
    4. Caches the authenticated identity (per instance, indefinitely) and
       branch existence (per instance, 30s TTL)

    Caches are plain instance fields read through an injectable clock, so
    two clients never share state and tests can move time.

    Example:
        >>> client = HostingClient(RepositoryRef("acme", "site"), Authenticator(token))
        >>> client.ensure_branch("cms-draft")
        >>> client.commit_content("src/content/pages/index.json", body, "Update index", "cms-draft")
    """

    BRANCH_CACHE_TTL = 30.0  # seconds

    def __init__(
        self,
        repository: RepositoryRef,
        authenticator: Authenticator,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        clock: Clock = time.monotonic,
    ):
        """Initialize the client.

        Args:
            repository: Repository this client reads and writes
            authenticator: Supplies the bearer credential on each request
            api_url: Base URL of the hosting API
            timeout: Per-request timeout in seconds
            session: Optional requests session (tests mount a fake transport on it)
            clock: Time source in seconds for the branch-existence TTL
        """
        self.repository = repository
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self._authenticator = authenticator
        self._session = session
        self._clock = clock

        self._identity: Optional[Identity] = None
        self._default_branch: Optional[str] = None
        self._branch_cache: Dict[str, BranchExistenceEntry] = {}

    @property
    def base_url(self) -> str:
        return f"{self.api_url}/repos/{self.repository.owner}/{self.repository.name}"

    def _get_session(self) -> requests.Session:
        """Get or lazily create the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _headers(self) -> Dict[str, str]:
        creds = self._authenticator.get_credentials()
        return {
            'Authorization': f'Bearer {creds.token}',
            'Accept': 'application/vnd.github.v3+json',
            'Content-Type': 'application/json',
            'User-Agent': 'cms-content-sync',
        }

    def _request(
        self,
        method: str,
        endpoint: str,
        operation: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """Send one request, retrying on rate limits.

        Transport failures become APIUnreachableError. Status codes are left
        for the caller to interpret, since 404 and 409 mean different things
        to different operations.
        """
        url = endpoint if endpoint.startswith('http') else f"{self.base_url}{endpoint}"

        def _send() -> requests.Response:
            try:
                response = self._get_session().request(
                    method,
                    url,
                    headers=self._headers(),
                    json=json_body,
                    params=params,
                    timeout=self.timeout,
                )
            except (Timeout, ConnectionError) as e:
                logger.warning(f"{operation}: transport failure ({type(e).__name__})")
                raise APIUnreachableError(endpoint=self.api_url) from e
            except RequestException as e:
                safe_msg = sanitize_credentials(str(e))
                logger.error(f"API operation failed: {operation} - {safe_msg}")
                raise APIAccessError(f"Hosting API failure during {operation}") from e

            if _is_rate_limited(response):
                raise RateLimitedError(
                    response.status_code, retry_after=_retry_after(response)
                )
            logger.debug(f"{method} {url} -> {response.status_code}")
            return response

        return retry_on_rate_limit(_send)

    def _raise_for_status(self, response: requests.Response, operation: str) -> None:
        """Translate an unexpected non-2xx response to a typed exception.

        Args:
            response: The HTTP response
            operation: Description of the operation (for messages and logs)

        Raises:
            InvalidCredentialsError: On 401 or 403
            APIAccessError: On any other non-2xx status
        """
        if response.ok:
            return

        status = response.status_code
        if status in (401, 403):
            raise InvalidCredentialsError(endpoint=self.api_url, reason=f"HTTP {status}")

        safe_body = sanitize_credentials(response.text[:500])
        logger.error(f"API operation failed: {operation} - HTTP {status}: {safe_body}")
        raise APIAccessError(
            f"Hosting API failure during {operation}: HTTP {status}",
            status_code=status,
        )

    def _parse(
        self,
        response: requests.Response,
        operation: str,
        extract: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """Decode a 2xx JSON body, optionally pulling fields out of it.

        A body that is not JSON, or lacks the fields `extract` reads, means
        the API answered with something other than what it documents.

        Raises:
            APIAccessError: If the body cannot be decoded or has the wrong shape
        """
        try:
            data = response.json()
            return extract(data) if extract is not None else data
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"API operation failed: {operation} - unexpected response body ({type(e).__name__})")
            raise APIAccessError(
                f"Hosting API returned an unexpected response during {operation}",
                status_code=response.status_code,
            ) from e

    # ------------------------------------------------------------------
    # Identity and repository metadata
    # ------------------------------------------------------------------

    def get_authenticated_user(self) -> Identity:
        """Return the account behind the credential.

        Cached for the lifetime of this client after the first success.

        Raises:
            InvalidCredentialsError: On any non-2xx response
            APIUnreachableError: If the API is unreachable
        """
        if self._identity is not None:
            return self._identity

        response = self._request('GET', f"{self.api_url}/user", "get_authenticated_user")
        if not response.ok:
            raise InvalidCredentialsError(
                endpoint=self.api_url, reason=f"HTTP {response.status_code}"
            )

        data = self._parse(response, "get_authenticated_user")
        if not isinstance(data, dict) or not data.get('login'):
            raise APIAccessError("User login not found in identity response")

        self._identity = Identity(
            login=data['login'],
            user_id=data.get('id'),
            name=data.get('name'),
        )
        logger.debug(f"Authenticated as {self._identity.login}")
        return self._identity

    def get_default_branch(self) -> str:
        """Return the repository's default branch name (cached per instance)."""
        if self._default_branch is not None:
            return self._default_branch

        response = self._request('GET', '', "get_default_branch")
        self._raise_for_status(response, "get_default_branch")
        self._default_branch = self._parse(
            response, "get_default_branch", lambda data: data['default_branch']
        )
        return self._default_branch

    def get_latest_commit_sha(self, branch: Optional[str] = None) -> str:
        """Return the head commit sha of a branch.

        With no branch this is the commit fingerprint: the default branch's
        head, used to key cache validity.

        Args:
            branch: Branch name (defaults to the repository default branch)

        Raises:
            APIAccessError: If the branch does not exist or the call fails
        """
        branch = branch or self.get_default_branch()
        response = self._request(
            'GET', f"/commits/{_quote(branch)}", f"get_latest_commit_sha({branch})"
        )
        self._raise_for_status(response, f"get_latest_commit_sha({branch})")
        return self._parse(
            response, f"get_latest_commit_sha({branch})", lambda data: data['sha']
        )

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def clear_branch_cache(self, name: Optional[str] = None) -> None:
        """Drop cached branch existence for one branch, or for all branches."""
        if name is None:
            self._branch_cache.clear()
        else:
            self._branch_cache.pop(name, None)

    def get_branch(self, name: str) -> Optional[Branch]:
        """Look up a branch ref.

        Returns:
            Branch with its head sha, or None if the branch does not exist
        """
        response = self._request(
            'GET', f"/git/ref/heads/{_quote(name)}", f"get_branch({name})"
        )
        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"get_branch({name})")
        head_commit_sha = self._parse(
            response, f"get_branch({name})", lambda data: data['object']['sha']
        )
        return Branch(name=name, head_commit_sha=head_commit_sha)

    def check_branch_exists(self, name: str) -> bool:
        """Check whether a branch exists, answering from cache when fresh.

        A cached answer younger than BRANCH_CACHE_TTL is returned without a
        request. A 404 is a valid False, not an error.
        """
        cached = self._branch_cache.get(name)
        now = self._clock()
        if cached is not None and now - cached.checked_at < self.BRANCH_CACHE_TTL:
            return cached.exists

        exists = self.get_branch(name) is not None
        self._branch_cache[name] = BranchExistenceEntry(exists=exists, checked_at=now)
        return exists

    def ensure_branch(
        self,
        name: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> Branch:
        """Make sure a branch exists, creating it from the default branch if not.

        Idempotent: calling it again returns the existing branch. A concurrent
        creation by another editor (422 "Reference already exists") is
        treated as success.

        Returns:
            The branch and its current head sha

        Raises:
            APIAccessError: If the default branch cannot be read or creation fails
        """
        if self.check_branch_exists(name):
            branch = self.get_branch(name)
            if branch is not None:
                return branch
            # Deleted since it was cached
            self.clear_branch_cache(name)

        if cancellation:
            cancellation.raise_if_cancelled(f"ensure_branch({name})")

        default_branch = self.get_default_branch()
        base = self.get_branch(default_branch)
        if base is None:
            raise APIAccessError(
                f"Default branch '{default_branch}' has no ref", status_code=404
            )

        response = self._request(
            'POST',
            '/git/refs',
            f"ensure_branch({name})",
            json_body={'ref': f"refs/heads/{name}", 'sha': base.head_commit_sha},
        )
        self.clear_branch_cache(name)

        if response.status_code == 422 and 'already exists' in response.text.lower():
            logger.info(f"Branch '{name}' was created concurrently, reusing it")
            existing = self.get_branch(name)
            if existing is not None:
                return existing

        self._raise_for_status(response, f"ensure_branch({name})")
        logger.info(f"Created branch '{name}' from '{default_branch}' at {base.head_commit_sha[:8]}")
        return Branch(name=name, head_commit_sha=base.head_commit_sha)

    def merge_branch(
        self,
        head: str,
        base: str,
        message: Optional[str] = None,
    ) -> Optional[str]:
        """Merge branch `head` into branch `base`.

        Returns:
            Sha of the merge commit, or None if `base` already contained `head`

        Raises:
            MergeConflictError: If the API reports the branches cannot be merged
            APIAccessError: If either branch is missing or the call fails
        """
        response = self._request(
            'POST',
            '/merges',
            f"merge_branch({head} -> {base})",
            json_body={
                'base': base,
                'head': head,
                'commit_message': message or f"Publish changes from {head}",
            },
        )
        if response.status_code == 409:
            raise MergeConflictError(head=head, base=base)
        if response.status_code == 204:
            logger.info(f"Nothing to merge: '{base}' already contains '{head}'")
            return None
        self._raise_for_status(response, f"merge_branch({head} -> {base})")
        merge_sha = self._parse(
            response, f"merge_branch({head} -> {base})", lambda data: data.get('sha')
        )
        logger.info(f"Merged '{head}' into '{base}'")
        return merge_sha

    def delete_branch(self, name: str) -> None:
        """Delete a branch ref and clear its cached existence.

        Deleting a branch that is already gone is not an error.
        """
        response = self._request(
            'DELETE', f"/git/refs/heads/{_quote(name)}", f"delete_branch({name})"
        )
        self.clear_branch_cache(name)
        if response.status_code in (404, 422):
            logger.debug(f"Branch '{name}' already absent")
            return
        self._raise_for_status(response, f"delete_branch({name})")
        logger.info(f"Deleted branch '{name}'")

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def _get_contents(self, path: str, branch: str, operation: str) -> Optional[Any]:
        response = self._request(
            'GET', f"/contents/{_quote(path)}", operation, params={'ref': branch}
        )
        if response.status_code == 404:
            return None
        self._raise_for_status(response, operation)
        return self._parse(response, operation)

    def get_file_sha(self, path: str, branch: str) -> Optional[str]:
        """Return the blob sha of a file, or None if it does not exist."""
        data = self._get_contents(path, branch, f"get_file_sha({path}@{branch})")
        if data is None:
            return None
        if isinstance(data, list):
            raise APIAccessError(f"{path} is a directory, not a file")
        if not isinstance(data, dict) or not data.get('sha'):
            raise APIAccessError(f"Hosting API returned no sha for {path}")
        return data['sha']

    def get_file(self, path: str, branch: str) -> Optional[FileBlob]:
        """Read a file's text and sha.

        Returns:
            FileBlob, or None if the file does not exist

        Raises:
            ContentDecodeError: If the payload is not decodable UTF-8 text
        """
        data = self._get_contents(path, branch, f"get_file({path}@{branch})")
        if data is None:
            return None
        if not isinstance(data, dict) or 'content' not in data:
            raise ContentDecodeError(path, branch, "response is not a file with inline content")
        try:
            content = decode_content(data['content'])
        except ValueError as e:
            raise ContentDecodeError(path, branch, str(e)) from e
        return FileBlob(path=path, content=content, sha=data.get('sha'))

    def get_file_content(self, path: str, branch: str) -> Optional[Any]:
        """Read and parse a JSON document.

        Returns:
            Parsed document, or None if the file does not exist

        Raises:
            ContentDecodeError: If the file exists but is not valid JSON
        """
        blob = self.get_file(path, branch)
        if blob is None:
            return None
        try:
            return json.loads(blob.content)
        except json.JSONDecodeError as e:
            raise ContentDecodeError(path, branch, f"invalid JSON: {e}") from e

    def list_directory(self, path: str, branch: str) -> List[str]:
        """List file paths directly inside a directory ([] if it does not exist)."""
        data = self._get_contents(path, branch, f"list_directory({path}@{branch})")
        if data is None:
            return []
        if not isinstance(data, list):
            raise APIAccessError(f"{path} is a file, not a directory")
        try:
            return [item['path'] for item in data if item.get('type') == 'file']
        except (KeyError, TypeError, AttributeError) as e:
            raise APIAccessError(f"Hosting API returned a malformed listing for {path}") from e

    def commit_content(
        self,
        path: str,
        content: str,
        message: str,
        branch: str,
        ensure_branch_first: bool = True,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        """Write a file to a branch as one commit.

        Steps run strictly in order: ensure branch, read the current sha,
        write with that sha. The sha is never reused across calls.

        Args:
            path: File path relative to the repository root
            content: New UTF-8 text content
            message: Commit message
            branch: Target branch
            ensure_branch_first: Create the branch first if it is missing
            cancellation: Checked before each remote step

        Returns:
            Sha of the new commit (None if the API omitted it)

        Raises:
            ConflictError: If the remote rejected the write due to a stale sha
            OperationCancelledError: If cancellation was requested between steps
        """
        operation = f"commit_content({path}@{branch})"

        if ensure_branch_first:
            if cancellation:
                cancellation.raise_if_cancelled(operation)
            self.ensure_branch(branch, cancellation=cancellation)

        if cancellation:
            cancellation.raise_if_cancelled(operation)
        sha = self.get_file_sha(path, branch)

        if cancellation:
            cancellation.raise_if_cancelled(operation)

        body: Dict[str, Any] = {
            'message': message,
            'content': encode_content(content),
            'branch': branch,
        }
        if sha:
            body['sha'] = sha

        response = self._request('PUT', f"/contents/{_quote(path)}", operation, json_body=body)

        if response.status_code == 409 or (
            response.status_code == 422 and 'sha' in response.text.lower()
        ):
            logger.warning(f"Sha conflict writing {path} on '{branch}'")
            raise ConflictError(path=path, branch=branch)

        self._raise_for_status(response, operation)
        logger.info(f"Committed {path} to '{branch}'")
        return self._parse(
            response, operation, lambda data: (data.get('commit') or {}).get('sha')
        )


def _quote(value: str) -> str:
    return quote(value, safe='/')


def _is_rate_limited(response: requests.Response) -> bool:
    if response.status_code == 429:
        return True
    return (
        response.status_code == 403
        and response.headers.get('X-RateLimit-Remaining') == '0'
    )


def _retry_after(response: requests.Response) -> float:
    value = response.headers.get('Retry-After')
    try:
        return float(value) if value else 0.0
    except ValueError:
        return 0.0
