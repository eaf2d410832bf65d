"""CatalogService / CatalogIndex 单元测试。"""

import pytest

from cartmatch.models import CatalogItem
from cartmatch.services.catalog_service import (
    UNKNOWN_BRAND,
    CatalogIndex,
    CatalogService,
    CatalogServiceError,
    split_tags,
    tokenize,
)


class TestTokenize:
    """测试分词。"""

    def test_lowercases_and_removes_stopwords(self):
        """测试小写化并去除停用词。"""
        assert tokenize("A Green Dress for the Party") == ["green", "dress", "party"]

    def test_light_stemming(self):
        """测试简单词干化。"""
        assert tokenize("dresses shoes accessories jeans") == ["dress", "shoe", "accessory", "jean"]

    def test_deduplicates(self):
        """测试去重。"""
        assert tokenize("dress dresses") == ["dress"]

    def test_split_tags(self):
        """测试标签拆分。"""
        assert split_tags("Women > Dresses | Midi; Casual") == ["women", "dresses", "midi", "casual"]


class TestCatalogServiceParseRows:
    """测试 CatalogService.parse_rows() 方法。"""

    def test_parse_basic_rows(self, catalog_rows):
        """测试基本行解析。"""
        result = CatalogService().parse_rows(catalog_rows)

        assert [item.item_key for item in result.items] == ["sku-1", "sku-3", "sku-4"]
        sneakers = result.items[2]
        assert sneakers.brand == "Veja"
        assert sneakers.tags == ("shoes", "casual", "sporty")
        assert sneakers.item_url == "https://shop.example.com/4"
        assert result.warnings == []

    def test_affiliate_feed_headers(self):
        """测试 AWIN 联盟数据源表头。"""
        rows = [{
            "aw_product_id": "123",
            "merchant_name": "Ganni",
            "product_name": "Printed Midi Skirt",
            "aw_deep_link": "https://awin.example.com/123",
            "merchant_image_url": "https://img.example.com/123.jpg",
            "category_name": "Skirts",
        }]

        item = CatalogService().parse_rows(rows).items[0]

        assert item.item_key == "123"
        assert item.brand == "Ganni"
        assert item.name == "Printed Midi Skirt"
        assert item.item_url == "https://awin.example.com/123"
        assert item.image_url == "https://img.example.com/123.jpg"
        assert item.tags == ("skirts",)

    def test_url_used_as_key_when_no_sku(self):
        """测试无 SKU 时使用 URL 作为键。"""
        rows = [{"Brand": "Arket", "Item URL": "https://shop.example.com/9"}]

        item = CatalogService().parse_rows(rows).items[0]

        assert item.item_key == "https://shop.example.com/9"

    def test_missing_key_and_duplicates_warn(self):
        """测试缺失键与重复键产生警告。"""
        rows = [
            {"SKU": "", "Brand": "A"},
            {"SKU": "x", "Brand": "A"},
            {"SKU": "x", "Brand": "B"},
        ]

        result = CatalogService().parse_rows(rows)

        assert [item.brand for item in result.items] == ["A"]
        assert [w.row_number for w in result.warnings] == [1, 3]
        assert all(w.source == "catalog" for w in result.warnings)

    def test_missing_brand_becomes_unknown(self):
        """测试缺失品牌设为 Unknown。"""
        item = CatalogService().parse_rows([{"SKU": "x"}]).items[0]

        assert item.brand == UNKNOWN_BRAND

    def test_json_list_tags(self):
        """测试 JSON 传入的标签列表。"""
        item = CatalogService().parse_rows([{"sku": "x", "tags": ["Dresses", "Boho"]}]).items[0]

        assert item.tags == ("dresses", "boho")


class TestCatalogIndex:
    """测试 CatalogIndex 查询。"""

    def test_items_for_facet(self, catalog_index):
        """测试按风格标签查询。"""
        keys = [item.item_key for item in catalog_index.items_for_facet("casual")]

        assert keys == ["sku-2", "sku-4"]

    def test_items_for_facet_matches_stemmed_tag(self, catalog_index):
        """测试标签词干匹配。"""
        keys = [item.item_key for item in catalog_index.items_for_facet("dress")]

        assert keys == ["sku-1", "sku-2", "sku-3"]

    def test_items_for_keyword_in_catalog_order(self, catalog_index):
        """测试关键词查询按目录顺序返回。"""
        keys = [item.item_key for item in catalog_index.items_for_keyword("white midi")]

        assert keys == ["sku-1", "sku-2", "sku-4"]

    def test_items_for_keyword_matches_brand(self, catalog_index):
        """测试关键词可匹配品牌。"""
        keys = [item.item_key for item in catalog_index.items_for_keyword("Carhartt")]

        assert keys == ["sku-6"]

    def test_unknown_lookups_are_empty(self, catalog_index):
        """测试无匹配返回空列表。"""
        assert catalog_index.items_for_facet("gothic") == []
        assert catalog_index.items_for_facet("") == []
        assert catalog_index.items_for_keyword("tuxedo") == []

    def test_empty_catalog(self):
        """测试空目录合法且无候选。"""
        index = CatalogIndex([])

        assert len(index) == 0
        assert index.items_for_facet("casual") == []
        assert index.items_for_keyword("dress") == []

    def test_brand_and_position(self, catalog_index):
        """测试品牌与位置查询。"""
        assert catalog_index.brand_of("sku-3") == "Ganni"
        assert catalog_index.position_of("sku-3") == 2
        with pytest.raises(CatalogServiceError):
            catalog_index.brand_of("missing")

    def test_has_facet(self, catalog_index):
        """测试标签判断。"""
        assert catalog_index.has_facet("sku-1", "romantic")
        assert not catalog_index.has_facet("sku-1", "casual")
        assert not catalog_index.has_facet("missing", "casual")

    def test_duplicate_keys_keep_first(self):
        """测试重复键保留第一条。"""
        index = CatalogIndex([
            CatalogItem(item_key="x", brand="A"),
            CatalogItem(item_key="x", brand="B"),
        ])

        assert len(index) == 1
        assert index.brand_of("x") == "A"

    def test_iteration_order(self, catalog_index, catalog_items):
        """测试迭代保持插入顺序。"""
        assert list(catalog_index) == catalog_items
