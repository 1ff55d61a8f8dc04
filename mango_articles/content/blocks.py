"""
块结构文档模型

文章正文的线上格式：
    {
        "time": 1700000000000,
        "version": "2.26.5",
        "blocks": [{"id": "...", "type": "paragraph", "data": {...}}, ...]
    }
"""
import copy
import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

# 编辑器写入的固定格式版本号
SCHEMA_VERSION = "2.26.5"

# 块类型
PARAGRAPH = "paragraph"
HEADER = "header"
QUOTE = "quote"
IMAGE = "image"
LIST = "list"
CHECKLIST = "checklist"
VIDEO = "video"
CODE = "code"
SEPARATOR = "separator"

BLOCK_TYPES = (PARAGRAPH, HEADER, QUOTE, IMAGE, LIST, CHECKLIST, VIDEO, CODE, SEPARATOR)

# 历史数据中出现过的同义类型
TYPE_ALIASES = {
    "text": PARAGRAPH,
    "heading": HEADER,
}

# 可以输入文字、响应回车/退格/行内格式的块
TEXT_BLOCK_TYPES = (PARAGRAPH, HEADER, QUOTE)

QUOTE_ALIGNMENTS = ("left", "center", "right")
LIST_STYLES = ("ordered", "unordered")
DEFAULT_HEADER_LEVEL = 2

_EMPTY_PAYLOADS: Dict[str, Any] = {
    PARAGRAPH: {"text": ""},
    HEADER: {"text": "", "level": DEFAULT_HEADER_LEVEL},
    QUOTE: {"text": "", "caption": "", "alignment": "left"},
    IMAGE: {"src": "", "alt": ""},
    LIST: {"style": "unordered", "items": []},
    CHECKLIST: {"items": []},
    VIDEO: {"url": ""},
    CODE: "",
    SEPARATOR: {},
}


class ContentBlock(BaseModel):
    """线上格式中的单个内容块"""
    id: Optional[str] = Field(None, description="编辑器会话内的块ID，服务端不保证保留")
    type: str = Field(..., description="块类型")
    data: Any = Field(None, description="块类型对应的数据")


class ArticleContent(BaseModel):
    """文章正文文档"""
    time: int = Field(..., description="保存时间（毫秒时间戳）")
    version: str = Field(SCHEMA_VERSION, description="格式版本")
    blocks: List[ContentBlock] = Field(default_factory=list, description="有序内容块")


def canonical_type(block_type: Any) -> Any:
    """把同义类型折算为标准类型，未知类型原样返回"""
    if isinstance(block_type, str):
        return TYPE_ALIASES.get(block_type, block_type)
    return block_type


def is_known_type(block_type: Any) -> bool:
    return canonical_type(block_type) in BLOCK_TYPES


def empty_payload(block_type: str) -> Any:
    """
    获取块类型的空数据

    Args:
        block_type: 块类型（支持同义类型）

    Returns:
        新的空数据副本；未知类型返回空字典
    """
    payload = _EMPTY_PAYLOADS.get(canonical_type(block_type), {})
    return copy.deepcopy(payload)


def parse_content(content: Any) -> Any:
    """
    把存储的正文还原为结构化对象

    字符串会尝试按JSON解析，解析失败（含嵌套过深）时原样返回字符串
    """
    if isinstance(content, (bytes, bytearray)):
        content = content.decode("utf-8", errors="replace")
    if isinstance(content, str):
        try:
            return json.loads(content)
        except (ValueError, RecursionError):
            # 非JSON或嵌套过深
            return content
    return content


def extract_blocks(content: Any) -> List[Any]:
    """
    从正文中取出块列表

    支持 {"blocks": [...]}、裸数组以及JSON字符串形式；其余形状返回空列表
    """
    parsed = parse_content(content)
    if isinstance(parsed, dict):
        blocks = parsed.get("blocks")
        return list(blocks) if isinstance(blocks, list) else []
    if isinstance(parsed, list):
        return list(parsed)
    return []


def block_projection(content: Union[Dict[str, Any], List[Any], str, None]) -> List[Dict[str, Any]]:
    """
    生成扁平化的块投影（用于 article_blocks 表）

    Returns:
        [{"type", "content", "order"}]，order 与正文中的顺序一致
    """
    projection = []
    for index, block in enumerate(extract_blocks(content)):
        if not isinstance(block, dict):
            continue
        projection.append({
            "type": str(block.get("type") or "unknown")[:50],
            "content": block.get("data", block.get("content")),
            "order": index,
        })
    return projection
