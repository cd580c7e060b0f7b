import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import certifi  # Provides Mozilla's CA bundle for SSL certificate verification
import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from stream_chat.auth import server_token
from stream_chat.errors import StreamAPIError
from stream_chat.version import __version__

logger = logging.getLogger(__name__)


def build_path(*parts: str) -> str:
    """Join path segments, escaping ids and skipping empty ones."""
    return "/".join(quote(str(p), safe="") for p in parts if p)


class StreamRESTClient:
    def __init__(self,
                api_key: str,
                api_secret: str,
                base_url: str,
                timeout: float = 6.0,
                verify_ssl: bool = True,
                total_retries: int = 3,
                backoff_factor: float = 0.5,
                status_forcelist: tuple = (429, 500, 502, 503, 504)):
        """
        Initializes a requests.Session with:
            - server-side JWT auth headers
            - JSON accept header
            - HTTPAdapter retrying connection errors, and the listed statuses
              for idempotent methods only, so writes are never replayed
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

        if verify_ssl is False:
            self.verify = False
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        else:
            self.verify = certifi.where()

        retry_strategy = Retry(
            total=total_retries,
            connect=total_retries,
            read=total_retries,
            backoff_factor=backoff_factor,
            status_forcelist=status_forcelist,
            allowed_methods=frozenset(["GET", "DELETE"]),
            respect_retry_after_header=True,
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

        # Default headers
        self.session.headers.update({
            "Authorization": server_token(api_secret),
            "Stream-Auth-Type": "jwt",
            "X-Stream-Client": f"stream-chat-python-{__version__}",
            "Accept": "application/json",
        })

    def _handle_response(self, resp: requests.Response) -> Any:
        """
        Check the status and decode the JSON body.

        Raises:
            StreamAPIError: For 4xx/5xx HTTP status codes
            ValueError: If a successful response is not valid JSON
        """
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = None
            err = StreamAPIError(resp, body if isinstance(body, dict) else None)
            logger.error(f"HTTP {resp.status_code} error for {resp.request.method if resp.request else ''} "
                         f"{resp.url}: {err.message}")
            if err.rate_limit is not None and err.rate_limit.exhausted():
                logger.warning(f"Rate limit exhausted until {err.rate_limit.reset.isoformat()}")
            raise err

        if not resp.content:
            logger.warning(f"Empty response received for {resp.url}")
            return {}

        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"Invalid JSON response from {resp.url}: {resp.text[:200]}...")
            raise ValueError(f"Invalid JSON response: {e}")

    def request(self,
                method: str,
                path: str,
                params: Optional[Dict[str, Any]] = None,
                json: Any = None,
                data: Optional[Dict[str, Any]] = None,
                files: Optional[Dict[str, Any]] = None) -> Any:
        """Perform one request against the API, returning parsed JSON."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {"api_key": self.api_key}
        for key, value in (params or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            query[key] = value

        logger.debug(f"{method} {url}")
        resp = self.session.request(
            method,
            url,
            params=query,
            json=json,
            data=data,
            files=files,
            timeout=self.timeout,
            verify=self.verify,
        )
        return self._handle_response(resp)

    def get(self, path: str, params=None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json=None, params=None) -> Any:
        return self.request("POST", path, params=params, json=json if json is not None else {})

    def put(self, path: str, json=None, params=None) -> Any:
        return self.request("PUT", path, params=params, json=json if json is not None else {})

    def patch(self, path: str, json=None, params=None) -> Any:
        return self.request("PATCH", path, params=params, json=json if json is not None else {})

    def delete(self, path: str, params=None) -> Any:
        return self.request("DELETE", path, params=params)

    def close(self) -> None:
        self.session.close()
