"""
文章正文：块结构文档模型、渲染器与编辑器
"""
from .blocks import ArticleContent, ContentBlock, block_projection, extract_blocks
from .renderer import DisplayNode, extract_preview, render_blocks, render_html
from .editor import BlockEditor, EditableBlock, TextSelection

__all__ = [
    "ArticleContent",
    "ContentBlock",
    "block_projection",
    "extract_blocks",
    "DisplayNode",
    "extract_preview",
    "render_blocks",
    "render_html",
    "BlockEditor",
    "EditableBlock",
    "TextSelection"
]
