# bot.py
# 入口文件，负责加载配置和插件、启动应用并等待退出

import asyncio
import sys

# 解析命令行参数，检查是否禁用 colorama
_no_colorama = '--no_colorama' in sys.argv

# ---------------------- 日志系统 ----------------------
from logger_config import get_logger, set_no_colorama
set_no_colorama(_no_colorama)
logger = get_logger("Bot")

# ---------------------- 应用 ----------------------
from core.adapters import ConsoleAdapter
from core.app import App
from core.config_manager import load_config
from core.plugin_loader import PluginLoader


async def main():
    """主函数，协调整个程序的启动和运行。"""
    # 1. 加载配置
    config = load_config()

    # 2. 创建应用（根上下文）
    app = App(config)

    # 3. 加载插件目录中的插件
    loader = PluginLoader(app, config.get("plugins_dir", "plugins"), config.get("plugins"))
    app.provide("plugin_loader", loader)
    loader.load_all()

    # 4. 启动适配器并触发 ready
    adapter = ConsoleAdapter(app)
    try:
        await app.start(adapter)
        await adapter.wait_closed()
    except KeyboardInterrupt:
        logger.info("程序被用户中断")
    except Exception as e:
        logger.critical(f"程序发生未处理异常: {e}", exc_info=True)
    finally:
        await app.stop()


def run_bot():
    print("=====================================")
    print("输入 'help' 查看可用指令，Ctrl+D 退出")
    print("=====================================")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("程序完全退出")


if __name__ == "__main__":
    run_bot()
