"""
文章正文渲染器

把（可能残缺、可能是历史格式的）块结构文档映射为有序的显示节点列表。
渲染是纯函数，任何输入都不会抛出异常：缺失字段使用默认值，未知类型输出诊断节点。
"""
import json
import logging
from dataclasses import dataclass, field
from functools import partial
from html.parser import HTMLParser
from typing import Any, Callable, Dict, List, Optional

from bleach.linkifier import LinkifyFilter
from bleach.sanitizer import Cleaner
from markupsafe import Markup

from mango_articles.content.blocks import (
    CHECKLIST,
    CODE,
    DEFAULT_HEADER_LEVEL,
    HEADER,
    IMAGE,
    LIST,
    PARAGRAPH,
    QUOTE,
    QUOTE_ALIGNMENTS,
    SEPARATOR,
    VIDEO,
    canonical_type,
    parse_content,
)

logger = logging.getLogger(__name__)

# 显示节点类型（除块类型本身外的附加类型）
IMAGE_PLACEHOLDER = "image_placeholder"
VIDEO_EMBED = "video_embed"
VIDEO_PLACEHOLDER = "video_placeholder"
LIST_ITEM = "list_item"
CHECKLIST_ITEM = "checklist_item"
UNKNOWN = "unknown"
INVALID = "invalid"
RAW_TEXT = "raw_text"
EMPTY = "empty"

MISSING_IMAGE_TEXT = "[Image placeholder - missing image source]"
MISSING_VIDEO_TEXT = "[Video placeholder - missing video URL]"
INVALID_BLOCK_TEXT = "Invalid block data"
NO_CONTENT_TEXT = "No content available"
PREVIEW_FALLBACK = "Read this article..."

YOUTUBE_EMBED_URL = "https://www.youtube.com/embed/{}"
VIMEO_EMBED_URL = "https://player.vimeo.com/video/{}"

# 行内HTML白名单
INLINE_TAGS = {"strong", "b", "em", "i", "u", "s", "code", "mark", "a", "br"}
SAFE_LINK_PROTOCOLS = {"http", "https", "mailto"}


@dataclass
class DisplayNode:
    """显示节点"""
    kind: str
    text: str = ""
    attrs: Dict[str, Any] = field(default_factory=dict)
    children: List["DisplayNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "text": self.text,
            "attrs": dict(self.attrs),
            "children": [child.to_dict() for child in self.children],
        }

    def to_html(self) -> str:
        writer = _HTML_WRITERS.get(self.kind, _write_fallback)
        return str(writer(self))


def _link_target(attrs: dict, new: bool = False) -> dict:
    """链接统一在新窗口打开"""
    attrs[(None, "target")] = "_blank"
    attrs[(None, "rel")] = "noopener noreferrer"
    return attrs


_inline_cleaner = Cleaner(
    tags=INLINE_TAGS,
    attributes={"a": ["href"]},
    protocols=SAFE_LINK_PROTOCOLS,
    strip=True,
    filters=[partial(LinkifyFilter, callbacks=[_link_target], skip_tags=["code"], parse_email=False)],
)


class _TextExtractor(HTMLParser):
    """提取纯文本"""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: List[str] = []

    def handle_data(self, data: str):
        self.parts.append(data)


def sanitize_inline_html(text: str) -> Markup:
    """清洗行内HTML（白名单标签，链接只保留安全协议），返回可直接输出的标记"""
    return Markup(_inline_cleaner.clean(text or ""))


def strip_tags(text: str) -> str:
    extractor = _TextExtractor()
    extractor.feed(text or "")
    extractor.close()
    return " ".join("".join(extractor.parts).split())


# ---------------------------------------------------------------------------
# 字段查找
# ---------------------------------------------------------------------------

def _data(block: dict) -> dict:
    data = block.get("data")
    return data if isinstance(data, dict) else {}


def _content(block: dict) -> dict:
    content = block.get("content")
    return content if isinstance(content, dict) else {}


def _first_str(*values: Any) -> str:
    """返回第一个非空字符串"""
    for value in values:
        if isinstance(value, str) and value:
            return value
    return ""


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _block_text(block: dict) -> str:
    return _first_str(
        _data(block).get("text"),
        _str_or_none(block.get("data")),
        _str_or_none(block.get("content")),
        _content(block).get("text"),
        block.get("text"),
    )


def _lookup(block: dict, key: str) -> Any:
    """依次在 data、content、块本身中查找字段"""
    for source in (_data(block), _content(block), block):
        if source.get(key) is not None:
            return source[key]
    return None


def _payload(block: dict) -> dict:
    return _data(block) or _content(block)


def header_level(block: dict) -> int:
    """标题级别，缺失或非法时为2"""
    level = _lookup(block, "level")
    if isinstance(level, bool):
        return DEFAULT_HEADER_LEVEL
    try:
        level = int(level)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_HEADER_LEVEL
    return level if 1 <= level <= 6 else DEFAULT_HEADER_LEVEL


def image_source(block: dict) -> str:
    """
    图片地址查找顺序：
    块本身的 url/src → content.src/content.url → data.src/data.url → data.file.url
    """
    data, content = _data(block), _content(block)
    file_info = data.get("file") if isinstance(data.get("file"), dict) else {}
    return _first_str(
        block.get("url"),
        block.get("src"),
        content.get("src"),
        content.get("url"),
        data.get("src"),
        data.get("url"),
        file_info.get("url"),
    )


def image_caption(block: dict) -> str:
    data, content = _data(block), _content(block)
    return _first_str(
        block.get("caption"),
        content.get("caption"),
        content.get("alt"),
        data.get("caption"),
        data.get("alt"),
    )


def youtube_video_id(url: str) -> str:
    """
    提取YouTube视频ID

    watch?v= 形式取 v 参数到下一个 &；youtu.be/ 形式取路径段到下一个 ?
    """
    if "watch?v=" in url:
        return url.split("watch?v=", 1)[1].split("&")[0]
    if "youtu.be/" in url:
        return url.split("youtu.be/", 1)[1].split("?")[0]
    return ""


def vimeo_video_id(url: str) -> str:
    """提取Vimeo视频ID（vimeo.com/ 之后的路径段）"""
    if "vimeo.com/" not in url:
        return ""
    segment = url.split("vimeo.com/", 1)[1]
    return segment.split("?")[0].split("#")[0].split("/")[0]


def video_embed(url: str) -> Optional[Dict[str, str]]:
    """
    识别视频平台并生成嵌入信息

    Returns:
        {"provider", "videoId", "src", "title"}；不是已知平台或取不到ID时返回None
    """
    if "youtube.com" in url or "youtu.be" in url:
        video_id = youtube_video_id(url)
        if video_id:
            return {
                "provider": "youtube",
                "videoId": video_id,
                "src": YOUTUBE_EMBED_URL.format(video_id),
                "title": "YouTube video player",
            }
    elif "vimeo.com" in url:
        video_id = vimeo_video_id(url)
        if video_id:
            return {
                "provider": "vimeo",
                "videoId": video_id,
                "src": VIMEO_EMBED_URL.format(video_id),
                "title": "Vimeo video player",
            }
    return None


# ---------------------------------------------------------------------------
# 按块类型渲染
# ---------------------------------------------------------------------------

def _render_paragraph(block: dict) -> DisplayNode:
    return DisplayNode(PARAGRAPH, text=_block_text(block))


def _render_header(block: dict) -> DisplayNode:
    return DisplayNode(HEADER, text=_block_text(block), attrs={"level": header_level(block)})


def _render_quote(block: dict) -> DisplayNode:
    alignment = _lookup(block, "alignment")
    if alignment not in QUOTE_ALIGNMENTS:
        alignment = "left"
    caption = _lookup(block, "caption")
    return DisplayNode(
        QUOTE,
        text=_block_text(block),
        attrs={
            "caption": caption if isinstance(caption, str) else "",
            "alignment": alignment,
        },
    )


def _render_image(block: dict) -> DisplayNode:
    src = image_source(block)
    if not src:
        return DisplayNode(IMAGE_PLACEHOLDER, text=MISSING_IMAGE_TEXT)
    caption = image_caption(block)
    return DisplayNode(IMAGE, text=caption, attrs={"src": src, "alt": caption})


def _render_list(block: dict) -> DisplayNode:
    payload = _payload(block)
    items = payload.get("items") if isinstance(payload.get("items"), list) else []
    style = payload.get("style") if payload.get("style") == "ordered" else "unordered"

    children = []
    for item in items:
        if isinstance(item, dict):
            text = _first_str(item.get("content"), item.get("text"))
        elif item is None:
            text = ""
        else:
            text = str(item)
        children.append(DisplayNode(LIST_ITEM, text=text))
    return DisplayNode(LIST, attrs={"style": style}, children=children)


def _render_checklist(block: dict) -> DisplayNode:
    payload = _payload(block)
    items = payload.get("items") if isinstance(payload.get("items"), list) else []

    children = []
    for item in items:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        children.append(DisplayNode(
            CHECKLIST_ITEM,
            text=text if isinstance(text, str) else "",
            attrs={"checked": bool(item.get("checked"))},
        ))
    return DisplayNode(CHECKLIST, children=children)


def _render_video(block: dict) -> DisplayNode:
    data, content = _data(block), _content(block)
    url = _first_str(
        data.get("url"),
        content.get("url"),
        content.get("src"),
        block.get("url"),
    ).strip()
    if not url:
        return DisplayNode(VIDEO_PLACEHOLDER, text=MISSING_VIDEO_TEXT)

    embed = video_embed(url)
    if embed:
        return DisplayNode(VIDEO_EMBED, attrs=dict(embed, url=url))
    return DisplayNode(VIDEO, attrs={"src": url})


def _render_code(block: dict) -> DisplayNode:
    code = ""
    for value in (block.get("data"), block.get("content"), block):
        if isinstance(value, str):
            code = value
            break
        if isinstance(value, dict) and isinstance(value.get("code"), str):
            code = value["code"]
            break
    return DisplayNode(CODE, text=code)


def _render_separator(block: dict) -> DisplayNode:
    return DisplayNode(SEPARATOR)


def _render_unknown(block: dict) -> DisplayNode:
    block_type = block.get("type")
    try:
        raw = json.dumps(block, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError, RecursionError):
        raw = repr(block)
    return DisplayNode(
        UNKNOWN,
        text=f"Unknown block type: {block_type}",
        attrs={"type": str(block_type), "raw": raw},
    )


_RENDERERS: Dict[str, Callable[[dict], DisplayNode]] = {
    PARAGRAPH: _render_paragraph,
    HEADER: _render_header,
    QUOTE: _render_quote,
    IMAGE: _render_image,
    LIST: _render_list,
    CHECKLIST: _render_checklist,
    VIDEO: _render_video,
    CODE: _render_code,
    SEPARATOR: _render_separator,
}


def render_block(block: Any) -> DisplayNode:
    """渲染单个块"""
    if not isinstance(block, dict):
        return DisplayNode(INVALID, text=INVALID_BLOCK_TEXT)

    block_type = block.get("type")
    renderer = _RENDERERS.get(canonical_type(block_type)) if isinstance(block_type, str) else None
    if renderer is None:
        return _render_unknown(block)

    try:
        return renderer(block)
    except Exception:
        logger.exception("Failed to render %s block, falling back to raw view", block_type)
        return _render_unknown(block)


def render_blocks(content: Any) -> List[DisplayNode]:
    """
    渲染文章正文

    Args:
        content: 正文，可以是 {"blocks": [...]}、块数组或它们的JSON字符串

    Returns:
        List[DisplayNode]: 每个块对应一个节点
    """
    if content is None:
        return []

    parsed = content
    if isinstance(content, (str, bytes, bytearray)):
        parsed = parse_content(content)
        if not isinstance(parsed, (dict, list)):
            # 不是结构化正文，整体作为纯文本展示
            text = content.decode("utf-8", errors="replace") if isinstance(content, (bytes, bytearray)) else content
            return [DisplayNode(RAW_TEXT, text=text)] if text.strip() else []

    if isinstance(parsed, dict):
        blocks = parsed.get("blocks")
        if not isinstance(blocks, list):
            return []
    elif isinstance(parsed, list):
        blocks = parsed
    else:
        return [DisplayNode(EMPTY, text=NO_CONTENT_TEXT)]

    return [render_block(block) for block in blocks]


def render_html(content: Any) -> str:
    """渲染为HTML字符串"""
    return "\n".join(node.to_html() for node in render_blocks(content))


def extract_preview(content: Any, length: int = 120) -> str:
    """
    生成文章卡片的正文预览

    取第一个段落块的纯文本；正文是非结构化字符串时直接截取
    """
    for node in render_blocks(content):
        if node.kind in (PARAGRAPH, RAW_TEXT):
            text = strip_tags(node.text)
            if not text:
                continue
            return text[:length] + "..." if len(text) > length else text
    return PREVIEW_FALLBACK


# ---------------------------------------------------------------------------
# HTML输出
# ---------------------------------------------------------------------------

def _write_paragraph(node: DisplayNode) -> Markup:
    return Markup("<p>{}</p>").format(sanitize_inline_html(node.text))


def _write_header(node: DisplayNode) -> Markup:
    level = node.attrs.get("level", DEFAULT_HEADER_LEVEL)
    return Markup("<h{0}>{1}</h{0}>").format(level, sanitize_inline_html(node.text))


def _write_quote(node: DisplayNode) -> Markup:
    html = Markup('<blockquote class="text-{}"><p>{}</p>').format(
        node.attrs.get("alignment", "left"), sanitize_inline_html(node.text)
    )
    if node.attrs.get("caption"):
        html += Markup("<footer><cite>{}</cite></footer>").format(node.attrs["caption"])
    return html + Markup("</blockquote>")


def _write_image(node: DisplayNode) -> Markup:
    html = Markup('<figure><img src="{}" alt="{}">').format(node.attrs["src"], node.attrs.get("alt", ""))
    if node.text:
        html += Markup("<figcaption>{}</figcaption>").format(node.text)
    return html + Markup("</figure>")


def _write_placeholder(node: DisplayNode) -> Markup:
    return Markup('<div class="placeholder">{}</div>').format(node.text)


def _write_list(node: DisplayNode) -> Markup:
    tag = "ol" if node.attrs.get("style") == "ordered" else "ul"
    items = Markup("").join(
        Markup("<li>{}</li>").format(sanitize_inline_html(child.text)) for child in node.children
    )
    return Markup("<{0}>{1}</{0}>").format(Markup(tag), items)


def _write_checklist(node: DisplayNode) -> Markup:
    items = Markup("").join(
        Markup('<li class="{}"><input type="checkbox" disabled{}> {}</li>').format(
            "checked" if child.attrs.get("checked") else "unchecked",
            Markup(" checked") if child.attrs.get("checked") else "",
            child.text,
        )
        for child in node.children
    )
    return Markup('<ul class="checklist">{}</ul>').format(items)


def _write_video_embed(node: DisplayNode) -> Markup:
    return Markup(
        '<div class="video-embed"><iframe src="{}" title="{}" allowfullscreen></iframe></div>'
    ).format(node.attrs["src"], node.attrs.get("title", "Video"))


def _write_video(node: DisplayNode) -> Markup:
    return Markup(
        '<video controls><source src="{}">Your browser does not support video playback.</video>'
    ).format(node.attrs["src"])


def _write_code(node: DisplayNode) -> Markup:
    return Markup("<pre><code>{}</code></pre>").format(node.text)


def _write_separator(node: DisplayNode) -> Markup:
    return Markup("<hr>")


def _write_unknown(node: DisplayNode) -> Markup:
    return Markup('<div class="unknown-block"><p>{}</p><pre>{}</pre></div>').format(
        node.text, node.attrs.get("raw", "")
    )


def _write_fallback(node: DisplayNode) -> Markup:
    return Markup('<div class="article-content">{}</div>').format(node.text)


_HTML_WRITERS: Dict[str, Callable[[DisplayNode], Markup]] = {
    PARAGRAPH: _write_paragraph,
    HEADER: _write_header,
    QUOTE: _write_quote,
    IMAGE: _write_image,
    IMAGE_PLACEHOLDER: _write_placeholder,
    VIDEO_PLACEHOLDER: _write_placeholder,
    LIST: _write_list,
    CHECKLIST: _write_checklist,
    VIDEO_EMBED: _write_video_embed,
    VIDEO: _write_video,
    CODE: _write_code,
    SEPARATOR: _write_separator,
    UNKNOWN: _write_unknown,
}
