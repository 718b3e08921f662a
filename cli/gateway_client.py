"""HTTP client for communicating with the gateway service."""

import sys
import time
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

import httpx

from common.logging_config import get_logger
from common.utils import format_file_size
from cli.config import Config
from cli.constants import GREEN, RESET
from gateway.extractor import extract_share_id, is_valid_share_id
from gateway.strategy import DownloadStrategy, select_strategy

logger = get_logger(__name__)


class GatewayError(Exception):
    """Raised when the gateway cannot produce what was asked for."""

    pass


class GatewayClient:
    """HTTP client for the gateway API with retry logic and error handling."""

    def __init__(self, config: Config):
        """
        Initialize gateway client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized GatewayClient [base_url={config.get_base_url()}]")

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, HEAD, ...)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(
            f"Making request: {method} {endpoint} [request_id={self.request_id}]"
        )

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                )

        if isinstance(last_exception, httpx.ConnectError):
            raise ConnectionError("Cannot connect to gateway server. Is it running?")
        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. The file host may be slow.")
        raise ConnectionError("Max retries exceeded")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map gateway errors to user-friendly messages.

        Args:
            response: HTTP response object

        Returns:
            User-friendly error message
        """
        try:
            error_data = response.json()
            detail = error_data.get('error', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'INVALID_INPUT': f'Invalid share link ({detail}).',
            'UPSTREAM_TIMEOUT': 'Request timed out. Please try again.',
            'UPSTREAM_UNAVAILABLE': 'The helper service is unreachable. Please try again later.',
            'UPSTREAM_INVALID_METADATA': 'The share link has no downloadable file.',
            'UPSTREAM_NO_DOWNLOAD_LINK': 'Could not obtain a download link for this share.',
            'UPSTREAM_HTTP_STATUS': f'Download failed: {detail}',
        }

        if code in error_messages:
            return error_messages[code]

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            500: 'Server error',
            503: 'Service unavailable',
        }

        message = status_messages.get(response.status_code, detail)
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message

    def _share_id(self, share_url: str) -> str:
        share_id = extract_share_id(share_url)
        if not share_id:
            raise GatewayError("Invalid share URL format")
        if not is_valid_share_id(share_id):
            raise GatewayError(f"Invalid share id: {share_id!r}")
        return share_id

    def fetch_info(self, share_url: str) -> dict:
        """
        Resolve a share link through the gateway's JSON mode.

        Args:
            share_url: Share link as pasted by the user

        Returns:
            Dictionary with id, downloadUrl, fileName, fileSize, md5

        Raises:
            GatewayError: If the link is invalid or resolution failed
            ConnectionError: If the gateway is unreachable
        """
        share_id = self._share_id(share_url)

        try:
            response = self._request_with_retry(
                'GET', '/resolve', params={'id': share_id, 'format': 'json'}
            )
        except httpx.HTTPError as e:
            logger.warning(f"Gateway request failed for {share_id}: {type(e).__name__}: {e}")
            raise GatewayError(f"Gateway connection failed: {e}")

        if response.status_code != 200:
            raise GatewayError(self._format_error(response))

        try:
            data = response.json()
        except ValueError:
            raise GatewayError("Gateway returned an invalid response")
        if not isinstance(data, dict):
            raise GatewayError("Gateway returned an invalid response")
        data['id'] = share_id
        return data

    def info(self, share_url: str) -> str:
        """
        Describe the file behind a share link.

        Returns:
            Multi-line description or error message
        """
        try:
            data = self.fetch_info(share_url)
        except (GatewayError, ConnectionError) as e:
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during info: {e}", exc_info=True)
            return f"Error: Unexpected error during info: {e}"

        lines = [
            f"Name: {data.get('fileName', '')}",
            f"Size: {format_file_size(int(data.get('fileSize') or 0))}",
            f"MD5:  {data.get('md5') or '-'}",
            f"ID:   {data['id']}",
        ]
        return "\n".join(lines)

    def link(self, share_url: str) -> str:
        """
        Return the signed download link for a share.
        """
        try:
            data = self.fetch_info(share_url)
        except (GatewayError, ConnectionError) as e:
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during link: {e}", exc_info=True)
            return f"Error: Unexpected error during link: {e}"
        return data.get('downloadUrl', '')

    def _output_file(self, output_path: Optional[str], filename: str) -> Path:
        if output_path:
            output_file = Path(output_path)
            if output_file.exists() and output_file.is_dir():
                output_file = output_file / filename
        else:
            output_file = self.config.get_download_dir() / filename

        output_file.parent.mkdir(parents=True, exist_ok=True)
        return output_file

    def download(self, share_url: str, output_path: Optional[str] = None) -> str:
        """
        Download a shared file with progress feedback.

        Files above the configured direct-download threshold are fetched from
        the signed link itself; everything else is streamed through the
        gateway.

        Args:
            share_url: Share link as pasted by the user
            output_path: Optional output file or directory

        Returns:
            Success message with download details
        """
        try:
            data = self.fetch_info(share_url)
        except (GatewayError, ConnectionError) as e:
            return f"Error: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during download: {e}", exc_info=True)
            return f"Error: Unexpected error during download: {e}"

        filename = Path(data.get('fileName') or f"{data['id']}.bin").name
        expected_size = int(data.get('fileSize') or 0)
        strategy = select_strategy(expected_size, self.config.get_direct_download_threshold())

        if strategy is DownloadStrategy.REDIRECT:
            logger.info(f"Downloading {filename} directly from the file host")
            url = data['downloadUrl']
            params = None
        else:
            url = '/resolve'
            params = {'id': data['id']}

        try:
            output_file = self._output_file(output_path, filename)
            downloaded = self._stream_to_file(url, params, output_file, filename, expected_size)
        except GatewayError as e:
            return f"Error: {e}"
        except httpx.ConnectError:
            return "Error: Cannot connect to gateway server. Is it running?"
        except httpx.TimeoutException:
            return "Error: Request timed out. The file host may be slow."
        except httpx.HTTPError as e:
            logger.warning(f"Download of {filename} interrupted: {type(e).__name__}: {e}")
            return f"Error: Download interrupted: {e}"
        except IOError as e:
            return f"Error writing file: {e}"
        except Exception as e:
            logger.error(f"Unexpected error during download: {e}", exc_info=True)
            return f"Error: Unexpected error during download: {e}"

        return f"Downloaded: {filename} ({format_file_size(downloaded)})\nSaved to: {output_file.absolute()}"

    def _stream_to_file(
        self,
        url: str,
        params: Optional[dict],
        output_file: Path,
        filename: str,
        expected_size: int,
    ) -> int:
        """
        Stream a response body into output_file, drawing a progress line.

        Returns:
            Number of bytes written
        """
        with self.session.stream('GET', url, params=params, follow_redirects=True) as response:
            if response.status_code not in (200, 206):
                response.read()
                raise GatewayError(self._format_error(response))

            header_name = response.headers.get('X-File-Name')
            if header_name:
                filename = unquote(header_name)

            total_size = int(response.headers.get('X-File-Size') or 0) or expected_size
            downloaded = 0

            try:
                with open(output_file, 'wb') as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
                        downloaded += len(chunk)
                        self._display_progress(filename, downloaded, total_size)
            except Exception:
                sys.stdout.write('\n')
                output_file.unlink(missing_ok=True)
                logger.info(f"Removed partial file {output_file} after {downloaded} bytes")
                raise

            sys.stdout.write('\n')
            sys.stdout.flush()

        return downloaded

    def _display_progress(self, filename: str, downloaded: int, total_size: int) -> None:
        if total_size > 0:
            progress = min(downloaded / total_size, 1.0) * 100
            sys.stdout.write(
                f"\rDownloading {filename}: {format_file_size(downloaded)} / {format_file_size(total_size)} ({GREEN}{progress:.1f}%{RESET})"
            )
        else:
            sys.stdout.write(
                f"\rDownloading {filename}: {format_file_size(downloaded)}"
            )
        sys.stdout.flush()

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
