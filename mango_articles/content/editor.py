"""
块编辑器状态机

单用户、单文档的编辑会话：维护有序块列表、当前激活块、文本选区和浮层状态，
把离散的界面事件翻译成对块序列的修改，保存时序列化为线上文档格式。

所有本地操作都是全函数：找不到的块ID、未知块类型都降级为空操作，不抛异常。
唯一的异步操作是图片上传，失败时只记录错误信息，不影响文档其余部分。
"""
import copy
import itertools
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from mango_articles.content.blocks import (
    IMAGE,
    PARAGRAPH,
    SCHEMA_VERSION,
    TEXT_BLOCK_TYPES,
    ArticleContent,
    canonical_type,
    empty_payload,
    extract_blocks,
    is_known_type,
)
from mango_articles.content.renderer import strip_tags
from mango_articles.services.upload_service import UploadError, validate_upload

logger = logging.getLogger(__name__)

# 浮层（同一时间最多打开一个）
BLOCK_MENU = "block_menu"
FORMAT_TOOLBAR = "format_toolbar"

FORMAT_BOLD = "bold"
FORMAT_ITALIC = "italic"
FORMAT_LINK = "link"

EXCERPT_MAX_LENGTH = 160


@dataclass
class EditableBlock:
    """编辑中的块，id 只在当前会话内有效"""
    id: str
    type: str
    content: Any

    def to_wire(self) -> dict:
        return {"id": self.id, "type": self.type, "data": copy.deepcopy(self.content)}


@dataclass
class TextSelection:
    """选区，偏移量是选中时刻相对块文本的字符位置"""
    block_id: str
    start: int
    end: int
    text: str


def _get_text(block: EditableBlock) -> str:
    if isinstance(block.content, str):
        return block.content
    if isinstance(block.content, dict) and isinstance(block.content.get("text"), str):
        return block.content["text"]
    return ""


def _with_text(block: EditableBlock, text: str) -> Any:
    if isinstance(block.content, dict):
        return dict(block.content, text=text)
    return text


def slugify_title(title: str) -> str:
    """
    由标题生成slug：转小写，去掉非ASCII单词字符，空白替换为连字符
    """
    slug = re.sub(r"[^\w\s]", "", title.lower(), flags=re.ASCII)
    return re.sub(r"\s+", "-", slug.strip())


@dataclass
class BlockEditor:
    """块编辑器会话"""
    title: str = ""
    excerpt: str = ""
    featured_image: str = ""
    blocks: List[EditableBlock] = field(default_factory=list)
    active_block_id: Optional[str] = None
    selection: Optional[TextSelection] = None
    open_overlay: Optional[str] = None
    is_uploading: bool = False
    error_message: Optional[str] = None

    def __post_init__(self):
        self._ids = itertools.count(1)
        if not self.blocks:
            # 新会话从一个空段落开始
            first = self._new_block(PARAGRAPH)
            self.blocks.append(first)
            self.active_block_id = first.id

    # ------------------------------------------------------------------
    # 会话构造
    # ------------------------------------------------------------------

    @classmethod
    def from_document(cls, content: Any, title: str = "", excerpt: str = "", featured_image: str = "") -> "BlockEditor":
        """
        从已保存的正文恢复编辑会话

        块ID由本会话重新分配，不沿用存储中的ID
        """
        editor = cls(title=title, excerpt=excerpt or "", featured_image=featured_image or "")
        loaded = []
        for raw in extract_blocks(content):
            if not isinstance(raw, dict) or not is_known_type(raw.get("type")):
                logger.debug("Skipping block that the editor cannot edit: %r", raw)
                continue
            block_type = canonical_type(raw["type"])
            payload = raw.get("data", raw.get("content"))
            if payload is None:
                payload = empty_payload(block_type)
            loaded.append(EditableBlock(editor._next_id(), block_type, copy.deepcopy(payload)))
        if loaded:
            editor.blocks = loaded
            editor.active_block_id = loaded[0].id
        return editor

    def _next_id(self) -> str:
        return f"blk-{next(self._ids)}"

    def _new_block(self, block_type: str) -> EditableBlock:
        return EditableBlock(self._next_id(), block_type, empty_payload(block_type))

    def _index_of(self, block_id: Optional[str]) -> int:
        for index, block in enumerate(self.blocks):
            if block.id == block_id:
                return index
        return -1

    def get_block(self, block_id: str) -> Optional[EditableBlock]:
        index = self._index_of(block_id)
        return self.blocks[index] if index >= 0 else None

    # ------------------------------------------------------------------
    # 块操作
    # ------------------------------------------------------------------

    def insert_block(self, block_type: str, at_index: Optional[int] = None) -> Optional[EditableBlock]:
        """
        插入新块

        默认插在当前激活块之后，指定 at_index 时插在该位置；新块成为激活块。

        Returns:
            新块；块类型未知时不做任何修改并返回None
        """
        if not is_known_type(block_type):
            return None

        block = self._new_block(canonical_type(block_type))
        if at_index is None:
            insert_at = self._index_of(self.active_block_id) + 1
        else:
            insert_at = max(0, min(at_index, len(self.blocks)))

        self.blocks.insert(insert_at, block)
        self.active_block_id = block.id
        self.open_overlay = None
        return block

    def delete_block(self, block_id: str):
        """
        删除块

        只剩一个块时不删除，而是把它的内容清空为该类型的默认值
        """
        index = self._index_of(block_id)
        if index < 0:
            return

        if len(self.blocks) == 1:
            self.blocks[0].content = empty_payload(self.blocks[0].type)
            return

        del self.blocks[index]
        self.active_block_id = self.blocks[min(index, len(self.blocks) - 1)].id

    def edit_block_content(self, block_id: str, payload: Any):
        """替换块内容，找不到块时不做任何事"""
        block = self.get_block(block_id)
        if block is not None:
            block.content = payload

    def focus_block(self, block_id: str):
        """激活块，关闭所有浮层"""
        if self._index_of(block_id) >= 0:
            self.active_block_id = block_id
        self.open_overlay = None

    def split_on_enter(self, block_id: str, shift: bool = False) -> Optional[EditableBlock]:
        """
        回车：在当前块之后追加一个空段落（不会在光标处拆分文字）

        按住Shift时是块内换行，不做块操作
        """
        if shift:
            return None
        block = self.get_block(block_id)
        if block is None or block.type not in TEXT_BLOCK_TYPES:
            return None
        self.active_block_id = block_id
        return self.insert_block(PARAGRAPH)

    def backspace(self, block_id: str) -> bool:
        """
        在空块中按退格：删除该块（保留至少一个块）

        Returns:
            bool: 是否执行了删除
        """
        block = self.get_block(block_id)
        if block is None or block.type not in TEXT_BLOCK_TYPES:
            return False
        if _get_text(block) != "":
            return False
        self.delete_block(block_id)
        return True

    # ------------------------------------------------------------------
    # 浮层与选区
    # ------------------------------------------------------------------

    def open_block_menu(self):
        self.open_overlay = BLOCK_MENU

    def close_overlay(self):
        self.open_overlay = None

    def select_text(self, block_id: str, start: int, end: int, text: str):
        """
        记录选区并打开格式工具栏；空选区关闭工具栏
        """
        if not text or self.get_block(block_id) is None:
            self.selection = None
            if self.open_overlay == FORMAT_TOOLBAR:
                self.open_overlay = None
            return
        self.selection = TextSelection(block_id=block_id, start=start, end=end, text=text)
        self.open_overlay = FORMAT_TOOLBAR

    def apply_inline_format(self, kind: str, prompt_url: Optional[Callable[[], Optional[str]]] = None):
        """
        对选中的文字应用行内格式

        使用选中时记录的偏移量直接切片替换：before + wrap(text) + after。
        偏移量不会针对之后的编辑重新校验。链接地址为空或取消输入时不修改内容。

        Args:
            kind: bold | italic | link
            prompt_url: 询问链接地址的回调
        """
        selection = self.selection
        if selection is None:
            return

        block = self.get_block(selection.block_id)
        if block is None or block.type not in TEXT_BLOCK_TYPES:
            return

        if kind == FORMAT_BOLD:
            wrapped = f"<strong>{selection.text}</strong>"
        elif kind == FORMAT_ITALIC:
            wrapped = f"<em>{selection.text}</em>"
        elif kind == FORMAT_LINK:
            url = prompt_url() if prompt_url else None
            wrapped = (
                f'<a href="{url}" target="_blank" rel="noopener noreferrer">{selection.text}</a>'
                if url else None
            )
        else:
            return

        if wrapped is not None:
            text = _get_text(block)
            formatted = text[:selection.start] + wrapped + text[selection.end:]
            block.content = _with_text(block, formatted)
        self.open_overlay = None

    # ------------------------------------------------------------------
    # 元数据
    # ------------------------------------------------------------------

    def set_title(self, title: str):
        self.title = title

    def set_excerpt(self, excerpt: str):
        self.excerpt = excerpt[:EXCERPT_MAX_LENGTH]

    def set_featured_image(self, url: str):
        self.featured_image = (url or "").strip()

    def slug_from_title(self) -> str:
        return slugify_title(self.title)

    def generate_excerpt(self) -> str:
        """用前两个段落块的文字拼出摘要，超过160字符时截断"""
        texts = [
            strip_tags(_get_text(block))
            for block in self.blocks
            if block.type == PARAGRAPH
        ][:2]
        text = " ".join(texts).strip()
        if len(text) > EXCERPT_MAX_LENGTH:
            return text[:EXCERPT_MAX_LENGTH - 3] + "..."
        return text

    # ------------------------------------------------------------------
    # 序列化
    # ------------------------------------------------------------------

    def serialize(self, now: Optional[int] = None) -> Dict[str, Any]:
        """
        生成线上格式文档

        Args:
            now: 毫秒时间戳，默认取当前时间
        """
        document = ArticleContent(
            time=now if now is not None else int(time.time() * 1000),
            version=SCHEMA_VERSION,
            blocks=[block.to_wire() for block in self.blocks],
        )
        return document.model_dump()

    def build_save_payload(self, publish: bool = False) -> Optional[Dict[str, Any]]:
        """
        组装保存/发布请求体

        标题为空时记录错误信息并返回None
        """
        if not self.title.strip():
            self.error_message = "Please add a title for your article"
            return None

        self.error_message = None
        return {
            "title": self.title,
            "slug": self.slug_from_title(),
            "content": self.serialize(),
            "excerpt": self.excerpt or self.generate_excerpt(),
            "featuredImage": self.featured_image,
            "published": publish,
        }

    # ------------------------------------------------------------------
    # 图片上传
    # ------------------------------------------------------------------

    async def _upload(self, data: bytes, filename: str, content_type: str, uploader) -> Optional[str]:
        self.is_uploading = True
        self.error_message = None
        try:
            validate_upload(content_type, len(data))
            result = await uploader.upload(data, filename, content_type)
            return result.url
        except UploadError as e:
            logger.warning("Image upload failed: %s", e)
            self.error_message = f"{e.message}: {e.details}" if e.details else e.message
            return None
        finally:
            self.is_uploading = False

    async def upload_image(self, block_id: str, data: bytes, filename: str, content_type: str, uploader) -> bool:
        """
        上传图片并填充图片块

        上传完成前块内容保持为空；失败时记录错误信息，块内容不变，用户可以重试

        Returns:
            bool: 是否上传成功
        """
        block = self.get_block(block_id)
        if block is None or block.type != IMAGE:
            return False

        url = await self._upload(data, filename, content_type, uploader)
        if url is None:
            return False
        # 上传期间块可能已被删除
        self.edit_block_content(block_id, {"src": url, "alt": filename})
        return True

    async def upload_featured_image(self, data: bytes, filename: str, content_type: str, uploader) -> bool:
        url = await self._upload(data, filename, content_type, uploader)
        if url is None:
            return False
        self.featured_image = url
        return True
