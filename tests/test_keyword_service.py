"""KeywordService 与 RateLimitedKeywordClient 单元测试。

测试覆盖:
- 关键词提取与规范化
- LLM 响应解析（JSON 对象、数组、Markdown 代码块）
- 错误处理
- 调用间隔控制
"""

import pytest

from cartmatch.services.keyword_service import (
    KeywordService,
    KeywordServiceError,
    RateLimitedKeywordClient,
    normalize_keywords,
)
from cartmatch.services.llm_service import LLMService


class FakeClock:
    """可控时钟，sleep 会推进时间。"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestNormalizeKeywords:
    """测试关键词规范化。"""

    def test_cleans_and_dedupes(self):
        """测试小写化、去空白、去标点、去重。"""
        raw = ["  Midi  Dress. ", "midi dress", 3, "Green", ""]

        assert normalize_keywords(raw) == ["midi dress", "green"]

    def test_respects_limit(self):
        """测试数量上限。"""
        assert normalize_keywords(["a", "b", "c"], limit=2) == ["a", "b"]

    def test_rejects_non_list(self):
        """测试非列表输入抛出异常。"""
        with pytest.raises(KeywordServiceError):
            normalize_keywords("midi dress")


class TestKeywordServiceExtract:
    """测试 KeywordService.extract() 方法。"""

    def test_extract_returns_keywords(self, mock_llm):
        """测试正常提取。"""
        service = KeywordService(llm_service=mock_llm)

        keywords = service.extract("Looking for a green midi dress")

        assert keywords == ["midi dress", "green"]
        assert mock_llm.call_count == 1
        assert "green midi dress" in mock_llm.prompts[0]

    def test_blank_notes_skip_llm(self, mock_llm):
        """测试空备注不调用 LLM。"""
        service = KeywordService(llm_service=mock_llm)

        assert service.extract("   ") == []
        assert service.extract(None) == []
        assert mock_llm.call_count == 0

    def test_accepts_bare_json_array(self, mock_llm):
        """测试 LLM 直接返回数组。"""
        mock_llm.response = '["Boots", "leather"]'
        service = KeywordService(llm_service=mock_llm)

        assert service.extract("boots") == ["boots", "leather"]

    def test_strips_markdown_fence(self, mock_llm):
        """测试去除 Markdown 代码块。"""
        mock_llm.response = '```json\n{"keywords": ["linen trousers"]}\n```'
        service = KeywordService(llm_service=mock_llm)

        assert service.extract("linen") == ["linen trousers"]

    def test_max_keywords(self, mock_llm):
        """测试关键词数量上限。"""
        mock_llm.response = '{"keywords": ["a", "b", "c", "d"]}'
        service = KeywordService(llm_service=mock_llm, max_keywords=3)

        assert service.extract("notes") == ["a", "b", "c"]
        assert "at most 3 keywords" in mock_llm.prompts[0]

    def test_invalid_json_raises(self, mock_llm):
        """测试无效 JSON 抛出 KeywordServiceError。"""
        mock_llm.response = "not json at all"
        service = KeywordService(llm_service=mock_llm)

        with pytest.raises(KeywordServiceError):
            service.extract("notes")

    def test_llm_failure_raises(self, mock_llm):
        """测试 LLM 失败被包装为 KeywordServiceError。"""
        mock_llm.should_fail = True
        service = KeywordService(llm_service=mock_llm)

        with pytest.raises(KeywordServiceError, match="Mock LLM failure"):
            service.extract("notes")

    def test_default_llm_is_lazy(self, mock_llm):
        """测试默认使用全局 LLM 服务。"""
        LLMService.set_instance(mock_llm)
        service = KeywordService()

        assert service.extract("green dress") == ["midi dress", "green"]
        assert mock_llm.call_count == 1


class TestRateLimitedKeywordClient:
    """测试调用间隔控制。"""

    def test_spaces_successive_calls(self, mock_keywords):
        """测试连续调用之间等待剩余间隔。"""
        clock = FakeClock()
        client = RateLimitedKeywordClient(mock_keywords, 0.1, clock=clock, sleep=clock.sleep)

        client.extract("one")
        client.extract("two")
        clock.now += 5
        client.extract("three")

        assert clock.sleeps == [0.1]
        assert mock_keywords.calls == ["one", "two", "three"]

    def test_failed_call_still_counts(self, mock_keywords):
        """测试失败的调用同样计入间隔。"""
        mock_keywords.fail_on = {"boom"}
        clock = FakeClock()
        client = RateLimitedKeywordClient(mock_keywords, 0.5, clock=clock, sleep=clock.sleep)

        with pytest.raises(KeywordServiceError):
            client.extract("boom")
        client.extract("next")

        assert clock.sleeps == [0.5]

    def test_zero_delay_never_sleeps(self, mock_keywords):
        """测试零间隔不等待。"""
        clock = FakeClock()
        client = RateLimitedKeywordClient(mock_keywords, 0, clock=clock, sleep=clock.sleep)

        for text in ("a", "b", "c"):
            client.extract(text)

        assert clock.sleeps == []

    def test_returns_extractor_result(self):
        """测试返回被包装提取器的结果。"""
        from conftest import MockKeywordClient

        client = RateLimitedKeywordClient(MockKeywordClient({"x": ["dress"]}), 0)

        assert client.extract("x") == ["dress"]

    def test_negative_delay_rejected(self, mock_keywords):
        """测试负数间隔被拒绝。"""
        with pytest.raises(ValueError):
            RateLimitedKeywordClient(mock_keywords, -1)
