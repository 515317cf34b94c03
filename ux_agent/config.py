"""运行配置：默认值 + 环境变量（.env）"""

import os
from dataclasses import dataclass, fields, replace
from typing import Optional

from dotenv import find_dotenv, load_dotenv


DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_OUTPUT_DIR = "./test-results/ux-reports"
DEFAULT_API_URL = "http://localhost:3001"


@dataclass
class AgentConfig:
    """Agent 的可配置项，时间单位均为毫秒（request_timeout 除外）"""
    max_steps: int = 20
    timeout: int = 60000  # 整次运行的上限
    screenshot_on_each_step: bool = True
    stop_on_critical_issue: bool = False
    base_url: str = DEFAULT_BASE_URL
    headless: bool = True

    action_timeout: int = 5000
    navigation_timeout: int = 30000
    settle_delay: int = 500  # 每次动作后等待页面稳定
    initial_delay: int = 1000  # 打开起始页后等待前端完成 hydration
    output_dir: str = DEFAULT_OUTPUT_DIR

    # 推理服务（OpenAI 兼容接口），没有 api_key 时视为不可用
    api_key: Optional[str] = None
    api_base_url: Optional[str] = None
    model: str = DEFAULT_MODEL
    request_timeout: float = 60.0  # 秒

    # API 契约检查
    api_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None

    def __post_init__(self):
        if self.max_steps < 1:
            raise ValueError(f"max_steps 必须 >= 1，当前为 {self.max_steps}")
        if self.timeout <= 0:
            raise ValueError(f"timeout 必须 > 0，当前为 {self.timeout}")

    def merged(self, **overrides) -> "AgentConfig":
        """返回覆盖了部分字段的新配置"""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"未知配置项: {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def from_env(cls, **overrides) -> "AgentConfig":
        """
        从环境变量（以及当前目录的 .env 文件）读取配置。
        显式传入的 overrides 优先级最高。
        """
        load_dotenv(find_dotenv(usecwd=True))

        values = {
            "max_steps": _env_int("UX_MAX_STEPS"),
            "timeout": _env_int("UX_TIMEOUT_MS"),
            "screenshot_on_each_step": _env_bool("UX_SCREENSHOT_EACH_STEP"),
            "stop_on_critical_issue": _env_bool("UX_STOP_ON_CRITICAL"),
            "base_url": os.getenv("UX_BASE_URL"),
            "headless": _env_bool("UX_HEADLESS"),
            "output_dir": os.getenv("UX_OUTPUT_DIR"),
            "api_key": os.getenv("OPENAI_API_KEY") or None,
            "api_base_url": os.getenv("OPENAI_BASE_URL") or None,
            "model": os.getenv("OPENAI_MODEL"),
            "api_url": os.getenv("UX_API_URL"),
            "api_token": os.getenv("UX_API_TOKEN") or None,
        }
        return cls().merged(**values).merged(**overrides)


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"环境变量 {name} 必须是整数，当前为 {raw!r}")


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")
