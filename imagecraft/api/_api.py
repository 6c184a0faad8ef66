# coding: utf-8
"""Low-level HTTP connection shared by the storage and transform APIs."""

from __future__ import annotations

import base64
import json
import logging
import os
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import httpx

from imagecraft.io.env import is_development
from imagecraft.io.network_exceptions import (
    process_requests_exception_async,
    process_unhandled_request,
)

logging.basicConfig(
    level=logging.DEBUG if is_development() else logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class _Api:
    """
    Connection to the asset store upload endpoint and the image delivery endpoint.
    """

    def __init__(
        self,
        server_address: str,
        private_key: Optional[str] = None,
        public_key: Optional[str] = None,
        url_endpoint: Optional[str] = None,
        retry_count: Optional[int] = None,
        retry_sleep_sec: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # authorization
        self._server_address = server_address.rstrip("/")
        self._private_key = private_key
        self._public_key = public_key
        self._url_endpoint = url_endpoint.rstrip("/") if url_endpoint else None
        self._headers = {}
        if self._private_key:
            token = base64.b64encode(f"{self._private_key}:".encode("utf-8")).decode("ascii")
            self._headers["Authorization"] = f"Basic {token}"
        self._additional_headers = {}

        # logger
        self.logger = logger

        # retry settings
        self._retry_count = retry_count
        if self._retry_count is None:
            self._retry_count = int(os.getenv("IMAGECRAFT_RETRY_COUNT", 3))
        self._retry_sleep_sec = retry_sleep_sec
        if self._retry_sleep_sec is None:
            self._retry_sleep_sec = float(os.getenv("IMAGECRAFT_RETRY_SLEEP_SEC", 1))

        # httpx client
        self._transport = transport
        self._async_httpx_client: Optional[httpx.AsyncClient] = None

    @property
    def api_server_address(self) -> str:
        """
        Get API server address.

        :return: API server address.
        :rtype: :class:`str`
        """
        return self._server_address

    @property
    def url_endpoint(self) -> Optional[str]:
        """Public delivery endpoint that serves uploaded assets."""
        return self._url_endpoint

    def _prepare_url(self, method: str) -> str:
        """
        Prepares the API endpoint URL. Absolute URLs are passed through.
        """
        if method.startswith(("http://", "https://")):
            return method
        return f"{self.api_server_address}/{method.lstrip('/')}"

    def _merge_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        if headers is None:
            return {**self._headers, **self._additional_headers}
        return {**self._headers, **self._additional_headers, **headers}

    async def post_async(
        self,
        method: str,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Tuple[str, bytes, str]]] = None,
        json: Optional[Dict] = None,
        headers: Optional[Dict[str, str]] = None,
        retries: Optional[int] = None,
        raise_error: Optional[bool] = False,
        timeout: httpx._types.TimeoutTypes = 60,
    ) -> httpx.Response:
        """
        Performs POST request to server with given parameters using httpx.

        :param method: Method name or absolute URL.
        :type method: str
        :param data: Form fields to send in the body of request.
        :type data: dict, optional
        :param files: Files to send as multipart body.
        :type files: dict, optional
        :param json: Dictionary to send as JSON body.
        :type json: dict, optional
        :param headers: Custom headers to include in the request.
        :type headers: dict, optional
        :param retries: The number of attempts to connect to the server.
        :type retries: int, optional
        :param raise_error: Define, if you'd like to raise error if connection is failed.
        :type raise_error: bool, optional
        :param timeout: Overall timeout for the request.
        :type timeout: float, optional
        :return: Response object
        :rtype: :class:`httpx.Response`
        """
        self._set_async_client()

        if retries is None:
            retries = self._retry_count

        url = self._prepare_url(method)
        logger.info(f"POST {url}")
        headers = self._merge_headers(headers)

        response = None
        for retry_idx in range(retries):
            response = None
            try:
                response = await self._async_httpx_client.post(
                    url,
                    data=data,
                    files=files,
                    json=json,
                    headers=headers,
                    timeout=timeout,
                )
                if response.status_code != httpx.codes.OK:
                    _Api._raise_for_status_httpx(response)
                return response
            except (httpx.RequestError, httpx.HTTPStatusError) as exc:
                if (
                    isinstance(exc, httpx.HTTPStatusError)
                    and response.status_code in (401, 403)
                    and self._private_key is None
                ):
                    self.logger.info("IMAGEKIT_PRIVATE_KEY env variable is undefined.")
                if raise_error or retry_idx + 1 == retries:
                    raise exc
                await process_requests_exception_async(
                    self.logger,
                    exc,
                    method,
                    url,
                    verbose=True,
                    swallow_exc=True,
                    sleep_sec=min(self._retry_sleep_sec * (2**retry_idx), 60),
                    response=response,
                    retry_info={"retry_idx": retry_idx + 1, "retry_limit": retries},
                )
            except Exception as exc:
                process_unhandled_request(self.logger, exc)
        raise httpx.RequestError(
            f"Retry limit exceeded ({url})",
            request=getattr(response, "request", None),
        )

    async def get_async(
        self,
        method: str,
        params: Optional[httpx._types.QueryParamTypes] = None,
        headers: Optional[Dict[str, str]] = None,
        retries: Optional[int] = None,
        raise_error: Optional[bool] = False,
        timeout: httpx._types.TimeoutTypes = 60,
    ) -> httpx.Response:
        """
        Performs GET request with given parameters using httpx.

        :param method: Method name or absolute URL.
        :type method: str
        :param params: URL query parameters.
        :type params: httpx._types.QueryParamTypes, optional
        :param retries: The number of attempts to connect to the server.
        :type retries: int, optional
        :param timeout: Overall timeout for the request.
        :type timeout: float, optional
        :return: Response object
        :rtype: :class:`httpx.Response`
        """
        self._set_async_client()

        if retries is None:
            retries = self._retry_count

        url = self._prepare_url(method)
        logger.info(f"GET {url}")
        headers = self._merge_headers(headers)

        response = None
        for retry_idx in range(retries):
            response = None
            try:
                response = await self._async_httpx_client.get(
                    url, params=params, headers=headers, timeout=timeout
                )
                if response.status_code != httpx.codes.OK:
                    _Api._raise_for_status_httpx(response)
                return response
            except (httpx.RequestError, httpx.HTTPStatusError) as exc:
                if raise_error or retry_idx + 1 == retries:
                    raise exc
                await process_requests_exception_async(
                    self.logger,
                    exc,
                    method,
                    url,
                    verbose=True,
                    swallow_exc=True,
                    sleep_sec=min(self._retry_sleep_sec * (2**retry_idx), 60),
                    response=response,
                    retry_info={"retry_idx": retry_idx + 1, "retry_limit": retries},
                )
            except Exception as exc:
                process_unhandled_request(self.logger, exc)
        raise httpx.RequestError(
            f"Retry limit exceeded ({url})",
            request=getattr(response, "request", None),
        )

    @staticmethod
    def _raise_for_status_httpx(response: httpx.Response):
        """
        Raise error and show message with error code if given response can not connect to server.
        :param response: Response class object
        """
        http_error_msg = ""

        if hasattr(response, "reason_phrase"):
            reason = response.reason_phrase
        else:
            reason = "Can't get reason"

        def decode_response_content(response: httpx.Response):
            try:
                return response.content.decode("utf-8")
            except Exception as e:
                return f"Can't decode response content: {e}"

        if 400 <= response.status_code < 500:
            http_error_msg = "%s Client Error: %s for url: %s (%s)" % (
                response.status_code,
                reason,
                response.url,
                decode_response_content(response),
            )

        elif 500 <= response.status_code < 600:
            http_error_msg = "%s Server Error: %s for url: %s (%s)" % (
                response.status_code,
                reason,
                response.url,
                decode_response_content(response),
            )

        if http_error_msg:
            raise httpx.HTTPStatusError(
                message=http_error_msg, response=response, request=response.request
            )

    @staticmethod
    def parse_error(
        response: httpx.Response,
        default_message: Optional[str] = None,
    ) -> Optional[str]:
        """
        Extracts the store's error message from a failed response.

        :param response: Response object.
        :type response: httpx.Response
        :param default_message: Returned when the body carries no message.
        :type default_message: str, optional
        :return: Message reported by the server
        :rtype: :class:`str`
        """
        MESSAGE_FIELD = "message"
        ERROR_FIELD = "error"

        try:
            data: Union[Dict, Any] = json.loads(response.content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return default_message
        if not isinstance(data, dict):
            return default_message
        message = data.get(MESSAGE_FIELD) or data.get(ERROR_FIELD)
        if isinstance(message, str) and message.strip():
            return message
        return default_message

    def _set_async_client(self):
        """
        Set async httpx client with HTTP/2 if it is not set yet.
        """
        if self._async_httpx_client is None:
            if self._transport is not None:
                self._async_httpx_client = httpx.AsyncClient(transport=self._transport)
            else:
                self._async_httpx_client = httpx.AsyncClient(http2=True)

    async def aclose(self) -> None:
        """Close the underlying httpx client."""
        if self._async_httpx_client is not None:
            await self._async_httpx_client.aclose()
        self._async_httpx_client = None
