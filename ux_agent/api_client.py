"""
API 契约检查：绕过浏览器直接请求后端接口，确认 UI 依赖的端点可用。

请求失败（非 2xx 或网络错误）记录在 ApiTestResult 中，不抛异常；
单个套件内部出错时，run_all_suites 把它记为一次失败并继续。
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import DEFAULT_API_URL, AgentConfig
from .models import ApiTestResult, ApiTestSuite

logger = logging.getLogger(__name__)


@dataclass
class ApiTestCase:
    name: str
    method: str
    endpoint: str
    data: Any = None
    expected_status: Optional[int] = None
    validate: Optional[Callable[[Any], bool]] = None


HEALTH_CASES = [
    ApiTestCase("Health check", "GET", "/health", expected_status=200),
]

CHAT_CASES = [
    ApiTestCase("Create chat", "POST", "/chat", data={"name": "Test Chat"}),
    ApiTestCase("List chats", "GET", "/chat"),
]

PROJECT_CASES = [
    ApiTestCase("Create project", "POST", "/projects", data={"name": "Test Project", "chainId": 1}),
    ApiTestCase("List projects", "GET", "/projects"),
]

WALLET_CASES = [
    ApiTestCase("Get wallet address", "GET", "/wallet/address"),
    ApiTestCase("Get balances", "GET", "/wallet/balances"),
]


class ApiTestClient:
    """基于 httpx.AsyncClient 的后端接口检查客户端"""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    async def __aenter__(self) -> "ApiTestClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def set_auth_token(self, token: Optional[str]):
        self.auth_token = token

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    async def request(self, method: str, endpoint: str, data: Any = None) -> ApiTestResult:
        """发送一次请求并记录状态码、耗时与响应体"""
        method = method.upper()
        start = time.monotonic()
        try:
            response = await self._client.request(
                method,
                f"{self.base_url}{endpoint}",
                headers=self._headers(),
                json=data,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"{method} {endpoint} 请求失败: {e}")
            return ApiTestResult(
                endpoint=endpoint,
                method=method,
                status=0,
                response_time=_elapsed_ms(start),
                success=False,
                error=str(e) or type(e).__name__,
            )

        body = _parse_body(response)
        success = response.is_success
        error = None
        if not success:
            error = (body.get("error") if isinstance(body, dict) else None) or "Request failed"

        return ApiTestResult(
            endpoint=endpoint,
            method=method,
            status=response.status_code,
            response_time=_elapsed_ms(start),
            success=success,
            error=str(error) if error is not None else None,
            data=body,
        )

    async def get(self, endpoint: str) -> ApiTestResult:
        return await self.request("GET", endpoint)

    async def post(self, endpoint: str, data: Any = None) -> ApiTestResult:
        return await self.request("POST", endpoint, data)

    async def patch(self, endpoint: str, data: Any = None) -> ApiTestResult:
        return await self.request("PATCH", endpoint, data)

    async def delete(self, endpoint: str) -> ApiTestResult:
        return await self.request("DELETE", endpoint)

    async def run_suite(self, name: str, cases: List[ApiTestCase]) -> ApiTestSuite:
        """依次执行用例，validate 与 expected_status 任一不满足即判为失败"""
        start = time.monotonic()
        results = []

        for case in cases:
            result = await self.request(case.method, case.endpoint, case.data)

            if case.validate is not None and result.success and not case.validate(result.data):
                result.success = False
                result.error = result.error or "Custom validation failed"

            if case.expected_status is not None and result.status != case.expected_status:
                result.success = False
                result.error = f"Expected status {case.expected_status}, got {result.status}"

            results.append(result)

        passed = sum(1 for r in results if r.success)
        return ApiTestSuite(
            name=name,
            results=results,
            passed=passed,
            failed=len(results) - passed,
            duration=_elapsed_ms(start),
        )

    async def health_suite(self) -> ApiTestSuite:
        return await self.run_suite("Health API", HEALTH_CASES)

    async def chat_suite(self) -> ApiTestSuite:
        return await self.run_suite("Chat API", CHAT_CASES)

    async def project_suite(self) -> ApiTestSuite:
        return await self.run_suite("Project API", PROJECT_CASES)

    async def wallet_suite(self) -> ApiTestSuite:
        return await self.run_suite("Wallet API", WALLET_CASES)

    async def run_all_suites(self) -> List[ApiTestSuite]:
        suites = []
        for name, run in [
            ("Health API", self.health_suite),
            ("Chat API", self.chat_suite),
            ("Project API", self.project_suite),
            ("Wallet API", self.wallet_suite),
        ]:
            try:
                suites.append(await run())
            except Exception as e:
                logger.error(f"套件 {name} 执行出错: {e}")
                suites.append(ApiTestSuite(name=name, results=[], passed=0, failed=1, duration=0))
        return suites


async def run_api_checks(
    config: AgentConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[ApiTestSuite]:
    """按配置中的 api_url / api_token 运行全部套件"""
    logger.info(f"开始 API 契约检查: {config.api_url}")
    async with ApiTestClient(config.api_url, config.api_token, transport=transport) as client:
        return await client.run_all_suites()


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
