"""
Base transport for the CourseFlow REST API.

Every call returns an ApiResponse instead of raising, mirroring the
backend's own envelope: ``{success, data, error, statusCode, timestamp}``.
List endpoints are not consistent about where they put items and
pagination, so payloads are normalized here before views see them.
"""

import logging
import math
from collections import namedtuple
from typing import Dict, Optional

import requests
from django.utils import timezone

logger = logging.getLogger(__name__)


Page = namedtuple('Page', ['items', 'total', 'total_pages', 'page', 'limit'])


class ApiError(Exception):
    """A failed backend call, carrying the backend's message."""

    def __init__(self, message, status_code=0):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SessionExpired(ApiError):
    """The backend rejected the bearer token (HTTP 401)."""


class ApiResponse:
    """Standardized API response object."""

    def __init__(
        self,
        success: bool,
        data=None,
        error: str = '',
        status_code: int = 200,
        message: str = '',
        timestamp: Optional[str] = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.status_code = status_code
        self.message = message
        self.timestamp = timestamp or timezone.now().isoformat()

    def __bool__(self):
        return self.success

    def __repr__(self):
        if self.success:
            return f'<ApiResponse success status={self.status_code}>'
        return f'<ApiResponse failed status={self.status_code} error={self.error!r}>'

    @classmethod
    def failure(cls, error: str, status_code: int = 0) -> 'ApiResponse':
        return cls(success=False, error=error, status_code=status_code)

    def to_dict(self) -> Dict:
        return {
            'success': self.success,
            'data': self.data,
            'error': self.error,
            'message': self.message,
            'statusCode': self.status_code,
            'timestamp': self.timestamp,
        }

    def raise_for_error(self):
        """Raise ApiError (or SessionExpired on 401) if the call failed."""
        if self.success:
            return self
        if self.status_code == 401:
            raise SessionExpired(self.error or 'Your session has expired', 401)
        raise ApiError(self.error or 'Request failed', self.status_code)

    def error_message(self, fallback: str) -> str:
        return self.error or fallback

    @property
    def page(self) -> Optional[Page]:
        if not self.success:
            return None
        return extract_page(self.data)

    @property
    def items(self) -> list:
        page = self.page
        return page.items if page else []

    @property
    def total(self) -> int:
        page = self.page
        return page.total if page else 0

    @property
    def total_pages(self) -> int:
        page = self.page
        return page.total_pages if page else 1


def _paginated(items, total, page=None, limit=None, total_pages=None):
    page = page or 1
    limit = limit or 10
    if not total_pages:
        total_pages = math.ceil(total / limit) if total else 0
    return {
        'items': items,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'totalPages': total_pages,
            'hasNext': page < total_pages,
            'hasPrev': page > 1,
        },
    }


def normalize_payload(data, endpoint: str) -> ApiResponse:
    """
    Wrap a decoded JSON body in an ApiResponse.

    Handles, in order: auth payloads, bare verification-code arrays,
    ``{data: [...], total}`` paginated bodies, other bare arrays, bodies
    that already carry ``success``, and anything else as plain data.
    """
    if isinstance(data, dict) and data.get('user') and (data.get('access_token') or data.get('token')):
        return ApiResponse(success=True, data=data)

    if '/verification-codes' in endpoint and isinstance(data, list):
        return ApiResponse(success=True, data=data)

    if isinstance(data, dict) and isinstance(data.get('data'), list) and data.get('total') is not None:
        return ApiResponse(success=True, data={
            'data': _paginated(
                data['data'],
                data['total'],
                page=data.get('page'),
                limit=data.get('limit'),
                total_pages=data.get('totalPages'),
            ),
        })

    if isinstance(data, list):
        return ApiResponse(success=True, data=data)

    if isinstance(data, dict) and 'success' in data:
        return ApiResponse(
            success=bool(data['success']),
            data=data.get('data'),
            error=data.get('error') or '',
            status_code=data.get('statusCode') or 200,
            message=data.get('message') or '',
            timestamp=data.get('timestamp'),
        )

    return ApiResponse(success=True, data=data)


def extract_page(data) -> Optional[Page]:
    """
    Pull items and pagination out of any list envelope the backend uses.

    Returns None when the payload holds no recognizable item list.
    """
    if data is None:
        return None

    if isinstance(data, list):
        return Page(data, len(data), 1, 1, len(data))

    if not isinstance(data, dict):
        return None

    # {data: {items, pagination}} and {data: {data: [...]}} nest one level down
    inner = data.get('data')
    if isinstance(inner, dict) and ('items' in inner or isinstance(inner.get('data'), list)):
        return extract_page(inner)

    items = data.get('items')
    if items is None and isinstance(inner, list):
        items = inner
    if not isinstance(items, list):
        return None

    pagination = data.get('pagination') or {}
    total = pagination.get('total', data.get('total'))
    total_pages = pagination.get('totalPages', data.get('totalPages'))
    return Page(
        items=items,
        total=total if total is not None else len(items),
        total_pages=total_pages if total_pages is not None else 1,
        page=pagination.get('page', data.get('page', 1)),
        limit=pagination.get('limit', data.get('limit', len(items))),
    )


def _error_from_body(response, fallback=None) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get('message') or body.get('error')
    if isinstance(message, list):
        # Validation pipes return one message per failed field
        message = '; '.join(str(m) for m in message)
    return message or fallback or f'HTTP {response.status_code}: {response.reason}'


class ApiClient:
    """
    Thin wrapper over ``requests`` bound to a base URL and bearer token.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 30):
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout

    def _get_headers(self, json_body: bool = True) -> Dict:
        headers = {'Accept': 'application/json'}
        if json_body:
            headers['Content-Type'] = 'application/json'
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _url(self, endpoint: str) -> str:
        return f'{self.base_url}{endpoint}'

    @staticmethod
    def clean_params(params: Optional[Dict]) -> Dict:
        """Drop unset filters so they are not sent as empty query values."""
        if not params:
            return {}
        return {k: v for k, v in params.items() if v is not None and v != ''}

    def log_request(self, endpoint: str, method: str, data: Dict = None):
        logger.info(f"CourseFlow API Request: {method} {endpoint}")
        if data:
            safe = {k: ('***' if 'password' in k.lower() else v) for k, v in data.items()}
            logger.debug(f"Request data: {safe}")

    def log_response(self, endpoint: str, status_code: int):
        logger.info(f"CourseFlow API Response: {status_code} from {endpoint}")

    def request(self, method: str, endpoint: str, params: Dict = None, json: Dict = None) -> ApiResponse:
        """Send a JSON request and normalize the result."""
        self.log_request(endpoint, method, json)

        try:
            response = requests.request(
                method,
                self._url(endpoint),
                headers=self._get_headers(),
                params=self.clean_params(params),
                json=json,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.warning(f"CourseFlow API timeout: {method} {endpoint}")
            return ApiResponse.failure('Connection timeout')
        except requests.exceptions.RequestException as e:
            logger.error(f"CourseFlow API request failed: {method} {endpoint}: {e}")
            return ApiResponse.failure(str(e) or 'Network error occurred')

        self.log_response(endpoint, response.status_code)

        if not response.ok:
            return ApiResponse.failure(_error_from_body(response), response.status_code)

        if response.status_code == 204 or not response.content:
            return ApiResponse(success=True, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            logger.error(f"CourseFlow API returned invalid JSON from {endpoint}")
            return ApiResponse.failure('Invalid response from server', response.status_code)

        return normalize_payload(data, endpoint)

    def download_file(self, endpoint: str) -> ApiResponse:
        """GET a file endpoint; ``data`` is the response body as text."""
        self.log_request(endpoint, 'GET')

        try:
            response = requests.get(
                self._url(endpoint),
                headers=self._get_headers(json_body=False),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"CourseFlow file download failed: {endpoint}: {e}")
            return ApiResponse.failure(str(e) or 'Network error occurred')

        self.log_response(endpoint, response.status_code)

        if not response.ok:
            return ApiResponse.failure(_error_from_body(response), response.status_code)

        return ApiResponse(success=True, data=response.text, status_code=response.status_code)

    def upload_file(self, endpoint: str, uploaded_file) -> ApiResponse:
        """POST a multipart upload with the file under the ``file`` field."""
        self.log_request(endpoint, 'POST')

        name = getattr(uploaded_file, 'name', 'upload.csv')
        content_type = getattr(uploaded_file, 'content_type', None) or 'text/csv'
        try:
            response = requests.post(
                self._url(endpoint),
                headers=self._get_headers(json_body=False),
                files={'file': (name, uploaded_file.read(), content_type)},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"CourseFlow upload failed: {endpoint}: {e}")
            return ApiResponse.failure(str(e) or 'Network error occurred')

        self.log_response(endpoint, response.status_code)

        if not response.ok:
            return ApiResponse.failure(
                _error_from_body(response, fallback='Upload failed'), response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            return ApiResponse(success=True, data=None, status_code=response.status_code)

        return normalize_payload(data, endpoint)
