"""
线程导出打印PDF - 后端核心模块

模块结构：
- config/     运行期配置加载
- models/     数据模型定义
- slack/      Slack Web API 客户端
- thread/     线程读取与图文分组
- assets/     图片下载与转码
- layout/     版面排布（换行/分栏/分页）
- render/     PDF编码
- delivery/   上传交付状态机
- pipeline/   导出流水线编排
"""

__version__ = "0.1.0"
