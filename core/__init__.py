# core/__init__.py
# 指令、会话、适配器和应用入口
