"""测试配置和共享 Fixtures。"""

import pytest

from cartmatch.models import CatalogItem, Profile, StyleArchetype
from cartmatch.services.catalog_service import CatalogIndex
from cartmatch.services.keyword_service import KeywordServiceError
from cartmatch.services.llm_service import LLMService
from cartmatch.services.usage_ledger import UsageLedger


# ============================================================================
# Mock Services
# ============================================================================

class MockLLMService:
    """测试用 Mock LLM 服务。

    可以通过设置 response 属性来控制返回值。
    可以通过设置 should_fail 来模拟失败。
    """

    def __init__(self):
        self.response = '{"keywords": ["midi dress", "green"]}'
        self.should_fail = False
        self.call_count = 0
        self.prompts = []

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        self.call_count += 1
        self.prompts.append(prompt)

        if self.should_fail:
            raise Exception("Mock LLM failure")

        return self.response

    def reset(self):
        """重置状态。"""
        self.call_count = 0
        self.prompts = []


class MockKeywordClient:
    """测试用关键词提取器（按备注文本返回预设关键词）。

    fail_on 中的文本会抛出 KeywordServiceError，模拟配额/网络错误。
    """

    def __init__(self, mapping=None, fail_on=(), default=()):
        self.mapping = dict(mapping or {})
        self.fail_on = set(fail_on)
        self.default = list(default)
        self.calls = []

    def extract(self, text: str) -> list[str]:
        self.calls.append(text)
        if text in self.fail_on:
            raise KeywordServiceError("Mock quota exceeded")
        return list(self.mapping.get(text, self.default))


@pytest.fixture(autouse=True)
def reset_llm_service():
    """每个测试结束后恢复默认 LLM 服务。"""
    yield
    LLMService.reset()


# ============================================================================
# Catalog Fixtures
# ============================================================================

@pytest.fixture
def catalog_items() -> list[CatalogItem]:
    """创建示例商品目录。"""
    return [
        CatalogItem(
            item_key="sku-1",
            brand="Reformation",
            name="Green Midi Dress",
            tags=("dresses", "romantic"),
            image_url="https://img.example.com/1.jpg",
            item_url="https://shop.example.com/1",
        ),
        CatalogItem(
            item_key="sku-2",
            brand="Reformation",
            name="Linen Midi Dress",
            tags=("dresses", "casual"),
            image_url="https://img.example.com/2.jpg",
            item_url="https://shop.example.com/2",
        ),
        CatalogItem(
            item_key="sku-3",
            brand="Ganni",
            name="Floral Wrap Dress",
            tags=("dresses", "bohemian"),
            image_url="https://img.example.com/3.jpg",
            item_url="https://shop.example.com/3",
        ),
        CatalogItem(
            item_key="sku-4",
            brand="Veja",
            name="White Sneakers",
            tags=("shoes", "casual", "sporty"),
            image_url="https://img.example.com/4.jpg",
            item_url="https://shop.example.com/4",
        ),
        CatalogItem(
            item_key="sku-5",
            brand="Arket",
            name="Tailored Blazer",
            tags=("outerwear", "classic"),
            image_url="https://img.example.com/5.jpg",
            item_url="https://shop.example.com/5",
        ),
        CatalogItem(
            item_key="sku-6",
            brand="Carhartt",
            name="Cargo Pants",
            tags=("trousers", "streetwear"),
            image_url="https://img.example.com/6.jpg",
            item_url="https://shop.example.com/6",
        ),
    ]


@pytest.fixture
def catalog_index(catalog_items) -> CatalogIndex:
    """基于示例目录构建索引。"""
    return CatalogIndex(catalog_items)


@pytest.fixture
def catalog_rows() -> list[dict]:
    """原始目录行（CSV 读取后的形态）。"""
    return [
        {"SKU": "sku-1", "Brand": "Reformation", "Name": "Green Midi Dress",
         "Category": "Dresses", "Style": "Romantic",
         "Image URL": "https://img.example.com/1.jpg", "Item URL": "https://shop.example.com/1"},
        {"SKU": "sku-3", "Brand": "Ganni", "Name": "Floral Wrap Dress",
         "Category": "Dresses", "Style": "Bohemian",
         "Image URL": "https://img.example.com/3.jpg", "Item URL": "https://shop.example.com/3"},
        {"SKU": "sku-4", "Brand": "Veja", "Name": "White Sneakers",
         "Category": "Shoes", "Style": "Casual; Sporty",
         "Image URL": "https://img.example.com/4.jpg", "Item URL": "https://shop.example.com/4"},
    ]


@pytest.fixture
def ledger() -> UsageLedger:
    """空的使用量账本。"""
    return UsageLedger(batch_size=10)


# ============================================================================
# Profile Fixtures
# ============================================================================

@pytest.fixture
def sample_profile() -> Profile:
    """创建示例 Profile。"""
    return Profile(
        email="jane@example.com",
        first_name="Jane",
        style_archetype=StyleArchetype.ROMANTIC,
        notes="Looking for a green midi dress for a garden party",
    )


@pytest.fixture
def profile_rows() -> list[dict]:
    """原始用户行（包含重复邮箱）。"""
    return [
        {"Email": "Jane@X.com", "First Name": "Jane", "Style Archetype": "Romantic",
         "Saves": "green midi dress"},
        {"Email": "sam@example.com", "First Name": "Sam", "Style Archetype": "Casual",
         "Saves": "white sneakers"},
        {"Email": "jane@x.com", "First Name": "", "Style Archetype": "",
         "Saves": "floral wrap"},
    ]


@pytest.fixture
def mock_llm() -> MockLLMService:
    """创建 Mock LLM 服务。"""
    return MockLLMService()


@pytest.fixture
def mock_keywords() -> MockKeywordClient:
    """创建 Mock 关键词提取器。"""
    return MockKeywordClient()
