"""
WooCommerce REST API client with retry logic and rate limiting.
"""

import time
import random
from typing import Optional, Dict, List, Any
import httpx
from urllib.parse import urljoin


class WooCommerceError(Exception):
    """Base exception for WooCommerce API errors."""
    pass


class WooClient:
    """
    Synchronous WooCommerce REST API client (API v3, consumer key/secret).

    Feed generation runs to completion inside one request, so the client
    blocks rather than awaiting.
    """

    def __init__(
        self,
        store_url: str,
        consumer_key: str,
        consumer_secret: str,
        rate_limit_rps: float = 5.0,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize WooCommerce client.

        Args:
            store_url: Store base URL (e.g., https://example.com)
            consumer_key: WooCommerce consumer key
            consumer_secret: WooCommerce consumer secret
            rate_limit_rps: Rate limit (requests per second)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        if not consumer_key or not consumer_secret:
            raise ValueError("Must provide consumer_key and consumer_secret")

        self.store_url = store_url.rstrip('/')
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.rate_limit_rps = rate_limit_rps
        self.timeout = timeout

        # Rate limiting state
        self._last_request_time = 0.0
        self._min_interval = 1.0 / rate_limit_rps if rate_limit_rps > 0 else 0

        self.client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=transport
        )

    def _get_auth(self) -> httpx.Auth:
        return httpx.BasicAuth(self.consumer_key, self.consumer_secret)

    def _wait_for_rate_limit(self):
        """Wait if needed to respect rate limit."""
        now = time.time()
        elapsed = now - self._last_request_time
        if elapsed < self._min_interval:
            time.sleep(self._min_interval - elapsed)
        self._last_request_time = time.time()

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        max_retries: int = 3,
        initial_delay: float = 2.0,
        backoff_factor: float = 2.0
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to store_url)
            params: Query parameters
            max_retries: Maximum retry attempts
            initial_delay: Initial retry delay in seconds
            backoff_factor: Backoff multiplier

        Returns:
            httpx.Response

        Raises:
            WooCommerceError: If request fails after retries
        """
        url = urljoin(self.store_url + '/', endpoint.lstrip('/'))
        auth = self._get_auth()

        last_error = None

        for attempt in range(max_retries + 1):
            self._wait_for_rate_limit()
            delay = min(initial_delay * (backoff_factor ** attempt), 60.0)

            try:
                response = self.client.request(
                    method=method,
                    url=url,
                    params=params,
                    auth=auth
                )

                if response.status_code in (200, 201, 204):
                    return response

                # Non-retryable errors
                if response.status_code in (400, 401, 403, 404, 422):
                    raise WooCommerceError(
                        f"HTTP {response.status_code}: {response.text[:200]}"
                    )

                # Retryable errors (429, 500, 502, 503, 504)
                if response.status_code in (429, 500, 502, 503, 504):
                    last_error = f"HTTP {response.status_code}"
                    if attempt < max_retries:
                        time.sleep(delay + random.uniform(0, 0.4))
                        continue
                    raise WooCommerceError(
                        f"HTTP {response.status_code} after {max_retries} retries: {response.text[:200]}"
                    )

                raise WooCommerceError(f"Unexpected HTTP {response.status_code}: {response.text[:200]}")

            except httpx.TimeoutException as e:
                last_error = f"Timeout: {str(e)}"
                if attempt < max_retries:
                    time.sleep(delay)
                    continue
                raise WooCommerceError(f"Timeout after {max_retries} retries: {e}")

            except httpx.RequestError as e:
                last_error = f"Request error: {str(e)}"
                if attempt < max_retries:
                    time.sleep(delay)
                    continue
                raise WooCommerceError(f"Request error after {max_retries} retries: {e}")

        raise WooCommerceError(f"Request failed after {max_retries} retries: {last_error}")

    def _json_list(self, response: httpx.Response) -> List[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            raise WooCommerceError(f"Invalid JSON response: {e}")
        return data if isinstance(data, list) else []

    def get_products(
        self,
        page: int = 1,
        per_page: int = 100,
        status: str = "publish",
        orderby: str = "date",
        order: str = "desc"
    ) -> Dict[str, Any]:
        """
        List products.

        Args:
            page: Page number
            per_page: Items per page
            status: Product status filter
            orderby: Sort field
            order: Sort direction

        Returns:
            Dict with 'items' list and pagination info
        """
        params = {
            "page": page,
            "per_page": per_page,
            "status": status,
            "orderby": orderby,
            "order": order
        }
        response = self._request("GET", "/wp-json/wc/v3/products", params=params)

        total = int(response.headers.get("X-WP-Total", 0))
        total_pages = int(response.headers.get("X-WP-TotalPages", 1))

        return {
            "items": self._json_list(response),
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages
        }

    def get_all_variations(self, product_id: int, per_page: int = 100) -> List[Dict[str, Any]]:
        """
        Get all variations of a variable product, in menu order.

        Args:
            product_id: Parent product ID
            per_page: Items per page

        Returns:
            List of variation dicts
        """
        all_variations = []
        page = 1

        while True:
            params = {
                "page": page,
                "per_page": per_page,
                "orderby": "menu_order",
                "order": "asc"
            }
            response = self._request("GET", f"/wp-json/wc/v3/products/{product_id}/variations", params=params)
            items = self._json_list(response)
            all_variations.extend(items)

            total_pages = int(response.headers.get("X-WP-TotalPages", 1))
            if not items or page >= total_pages:
                break
            page += 1

        return all_variations

    def _get_all_pages(self, endpoint: str, per_page: int = 100) -> List[Dict[str, Any]]:
        results = []
        page = 1

        while True:
            params = {
                "per_page": per_page,
                "page": page
            }
            response = self._request("GET", endpoint, params=params)
            items = self._json_list(response)

            if not items:
                break

            results.extend(items)

            if len(items) < per_page:
                break
            page += 1

        return results

    def get_all_categories(self) -> List[Dict]:
        """Get all product categories with pagination."""
        return self._get_all_pages("/wp-json/wc/v3/products/categories")

    def get_all_shipping_classes(self) -> List[Dict]:
        """Get all shipping classes with pagination."""
        return self._get_all_pages("/wp-json/wc/v3/products/shipping_classes")

    def get_media_url(self, media_id: int) -> Optional[str]:
        """Get the source URL of a media attachment."""
        response = self._request("GET", f"/wp-json/wp/v2/media/{media_id}")
        try:
            data = response.json()
        except ValueError as e:
            raise WooCommerceError(f"Invalid JSON response: {e}")
        if isinstance(data, dict):
            return data.get("source_url") or None
        return None

    def close(self):
        """Close HTTP client."""
        self.client.close()
