"""
渲染模块 - 页面序列编码为PDF

子模块：
- pdf_encoder: reportlab 画布编码（等宽字体 + 内嵌位图）
"""

from .pdf_encoder import PDFEncoder

__all__ = ["PDFEncoder"]
