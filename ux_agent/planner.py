"""规划模块：调用推理服务分析页面并决定下一步"""

import logging
from typing import List, Optional

from openai import AsyncOpenAI

from .config import DEFAULT_MODEL, AgentConfig
from .models import AnalysisResult, PageState
from .normalizer import build_user_message, extract_json_object, fallback_analysis, normalize_result

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "你是一名资深的 UX 测试专家，正在对一个 Web 应用做探索式测试。\n"
    "你的任务：\n"
    "1. 理解当前页面状态；\n"
    "2. 找出 UX 问题（可用性、无障碍、视觉、功能、错误处理、反馈、导航）；\n"
    "3. 决定为达成用户目标应执行的下一步操作；\n"
    "4. 估计目标完成度（0-100）。\n"
    "你必须且只能输出一个 JSON 对象，格式如下：\n"
    "{\n"
    '  "currentPage": "当前页面/视图的描述",\n'
    '  "currentState": "当前 UI 状态的描述",\n'
    '  "availableActions": ["可执行操作列表"],\n'
    '  "suggestedNextAction": {\n'
    '    "type": "click|type|scroll|wait|navigate|hover|press_key|select|clear",\n'
    '    "selector": "CSS 选择器（如适用）",\n'
    '    "text": "要输入或要点击的文字",\n'
    '    "url": "navigate 时的地址",\n'
    '    "key": "press_key 时的按键",\n'
    '    "value": "select 时的选项值",\n'
    '    "direction": "scroll 时的方向 up|down|left|right",\n'
    '    "description": "为什么执行这个操作"\n'
    "  },\n"
    '  "uxIssues": [\n'
    "    {\n"
    '      "id": "稳定且唯一的 id，同一问题多次出现时保持一致",\n'
    '      "severity": "critical|major|minor|suggestion",\n'
    '      "category": "usability|accessibility|performance|visual|functionality|error_handling|feedback|navigation",\n'
    '      "title": "问题标题",\n'
    '      "description": "详细描述",\n'
    '      "suggestion": "修复建议"\n'
    "    }\n"
    "  ],\n"
    '  "progress": 0\n'
    "}\n"
    "目标已经达成时将 progress 设为 100。不要重复历史中已经失败的操作。"
)


class Planner:
    """
    推理服务客户端 + 响应归一化。

    没有配置 API key 时视为“不可用”，所有调用直接走兜底分析；
    网络错误或无法解析的回复同样回退到兜底分析，analyze() 从不抛异常。
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 2000,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config: AgentConfig) -> "Planner":
        if not config.api_key:
            logger.info("未配置 OPENAI_API_KEY，使用兜底分析")
            return cls(client=None, model=config.model)
        client = AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.api_base_url,
            timeout=config.request_timeout,
        )
        return cls(client=client, model=config.model)

    def is_available(self) -> bool:
        return self.client is not None

    async def analyze(
        self,
        page_state: PageState,
        goal: str,
        previous_actions: List[str],
        screenshot_base64: Optional[str] = None,
    ) -> AnalysisResult:
        """根据页面状态 + 目标 + 历史动作，给出结构化的分析结果"""
        if not self.is_available():
            return fallback_analysis(page_state, goal)

        user_message = build_user_message(page_state, goal, previous_actions)
        content = [{"type": "text", "text": user_message}]
        if screenshot_base64:
            content.insert(
                0,
                {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{screenshot_base64}"}},
            )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                temperature=0,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
            )
            output_str = response.choices[0].message.content or ""
        except Exception as e:
            logger.error(f"推理服务调用失败: {e}，使用兜底分析")
            return fallback_analysis(page_state, goal)

        parsed = extract_json_object(output_str)
        if parsed is None:
            logger.warning(f"无法从回复中解析 JSON，使用兜底分析。原始输出: {output_str[:200]}")
            return fallback_analysis(page_state, goal)

        try:
            return normalize_result(parsed)
        except Exception as e:
            logger.warning(f"回复字段无法归一化: {e}，使用兜底分析")
            return fallback_analysis(page_state, goal)
