# core/plugin_loader.py
# 插件加载器，从插件目录读取 plugin.yml 并加载到上下文

import importlib.util
import os
import sys
from typing import Any, Dict, List, Optional

import yaml

from logger_config import get_logger
from kernel.context import Context
from kernel.exceptions import PluginDependencyError, PluginError, PluginLoadError
from kernel.plugin import get_plugin_apply

logger = get_logger("PluginLoader")


class LoadedPlugin:
    """已加载插件的信息"""

    def __init__(self, name: str, meta: Dict[str, Any], context: Context, path: str):
        self.name = name  # 插件名称
        self.meta = meta  # plugin.yml 内容
        self.context = context  # 插件的子上下文
        self.path = path  # 插件目录

    @property
    def version(self) -> str:
        return str(self.meta.get('version', 'N/A'))

    def __repr__(self) -> str:
        return f"<LoadedPlugin name={self.name} version={self.version}>"


class PluginLoader:
    """插件加载器

    插件目录结构：
        plugins/
            echo/
                plugin.yml   # name, version, entry_point, config, enabled, dependencies
                main.py
    """

    def __init__(self, ctx: Context, plugins_dir: str = "plugins", configs: Optional[Dict[str, Any]] = None):
        self.ctx = ctx
        self.plugins_dir = plugins_dir
        self.configs = configs or {}  # 插件名 -> 覆盖 plugin.yml 中的配置
        self.plugins: Dict[str, LoadedPlugin] = {}
        self._dir_names: Dict[str, str] = {}  # 插件名 -> 目录名

    def load_all(self) -> Dict[str, bool]:
        """加载插件目录下的所有插件

        Returns:
            加载结果字典 {目录名: 是否成功}
        """
        results: Dict[str, bool] = {}
        if not os.path.isdir(self.plugins_dir):
            logger.warning(f"插件目录不存在: {self.plugins_dir}")
            return results

        pending = sorted(
            name for name in os.listdir(self.plugins_dir)
            if os.path.isfile(os.path.join(self.plugins_dir, name, 'plugin.yml'))
        )

        # 依赖未满足的插件推迟到下一轮，直到某一轮没有任何进展
        while pending:
            deferred = []
            for dir_name in pending:
                try:
                    results[dir_name] = self._load(dir_name)
                except PluginDependencyError:
                    deferred.append(dir_name)
            if len(deferred) == len(pending):
                for dir_name in deferred:
                    logger.error(f"插件 {dir_name} 的依赖无法满足")
                    results[dir_name] = False
                break
            pending = deferred

        success_count = sum(1 for ok in results.values() if ok)
        logger.info(f"插件加载完成: 成功 {success_count}/{len(results)}")
        return results

    def load(self, dir_name: str) -> bool:
        """加载单个插件

        Args:
            dir_name: 插件目录名

        Returns:
            是否加载成功
        """
        try:
            return self._load(dir_name)
        except PluginDependencyError as e:
            logger.error(str(e))
            return False

    def _load(self, dir_name: str) -> bool:
        plugin_path = os.path.join(self.plugins_dir, dir_name)
        try:
            meta = self._load_meta(plugin_path)
            name = meta.get('name') or dir_name

            if name in self.plugins:
                logger.warning(f"插件 {name} 已加载")
                return False

            if not meta.get('enabled', True):
                logger.info(f"插件 {name} 已禁用，跳过加载")
                return False

            self._check_dependencies(name, meta)
            target = self._import_entry(dir_name, plugin_path, meta.get('entry_point', 'main:apply'))

            config = dict(meta.get('config') or {})
            config.update(self.configs.get(name) or {})

            logger.info(f"正在加载插件: {name} v{meta.get('version', 'N/A')}")
            child = self.ctx.plugin(_NamedEntry(name, target), config)
            self.plugins[name] = LoadedPlugin(name, meta, child, plugin_path)
            self._dir_names[name] = dir_name
            return True
        except PluginDependencyError:
            raise
        except PluginError as e:
            logger.error(f"加载插件 {dir_name} 失败: {e}")
            return False
        except Exception as e:
            logger.error(f"加载插件 {dir_name} 失败: {e}", exc_info=True)
            return False

    def unload(self, name: str) -> bool:
        """卸载插件，清理它注册的所有副作用

        Args:
            name: 插件名称

        Returns:
            是否卸载成功
        """
        plugin = self.plugins.pop(name, None)
        if plugin is None:
            logger.warning(f"插件 {name} 未加载")
            return False

        dependents = [
            other.name for other in self.plugins.values()
            if name in self._plugin_dependencies(other.meta)
        ]
        if dependents:
            logger.warning(f"插件 {name} 被 {', '.join(dependents)} 依赖，它们可能无法正常工作")

        plugin.context.dispose()
        self._dir_names.pop(name, None)
        logger.info(f"插件 {name} 卸载成功")
        return True

    def reload(self, name: str) -> bool:
        """重载插件"""
        dir_name = self._dir_names.get(name)
        if dir_name is None or not self.unload(name):
            return False
        logger.info(f"正在重载插件: {name}")
        return self.load(dir_name)

    def get(self, name: str) -> Optional[LoadedPlugin]:
        return self.plugins.get(name)

    def list_plugins(self) -> List[LoadedPlugin]:
        return list(self.plugins.values())

    def _load_meta(self, plugin_path: str) -> Dict[str, Any]:
        meta_path = os.path.join(plugin_path, 'plugin.yml')
        if not os.path.exists(meta_path):
            raise PluginLoadError(f"插件元信息文件不存在: {meta_path}")

        try:
            with open(meta_path, 'r', encoding='utf-8') as f:
                meta = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise PluginLoadError(f"读取插件元信息失败: {e}") from e

        if meta is None:
            return {}
        if not isinstance(meta, dict):
            raise PluginLoadError(f"插件元信息格式错误: {meta_path}")
        return meta

    @staticmethod
    def _plugin_dependencies(meta: Dict[str, Any]) -> List[str]:
        dependencies = meta.get('dependencies') or {}
        return [str(dep) for dep in dependencies.get('plugins') or []]

    def _check_dependencies(self, name: str, meta: Dict[str, Any]):
        missing = [dep for dep in self._plugin_dependencies(meta) if dep not in self.plugins]
        if missing:
            raise PluginDependencyError(f"插件 {name} 缺少插件依赖: {', '.join(missing)}")

    def _import_entry(self, dir_name: str, plugin_path: str, entry_point: str) -> Any:
        """导入 entry_point 指定的 module:attr"""
        if ':' not in entry_point:
            entry_point = f'main:{entry_point}'
        module_name, attr = entry_point.split(':', 1)

        module_file = os.path.join(plugin_path, f"{module_name}.py")
        qualified_name = f"plugins.{dir_name}.{module_name}"
        spec = importlib.util.spec_from_file_location(qualified_name, module_file)
        if spec is None or spec.loader is None or not os.path.exists(module_file):
            raise PluginLoadError(f"无法加载插件模块: {module_file}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[qualified_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception:
            sys.modules.pop(qualified_name, None)
            raise

        target = getattr(module, attr, None)
        if target is None:
            raise PluginLoadError(f"插件模块 {module_name} 中没有 {attr}")
        return target


class _NamedEntry:
    """以 plugin.yml 中的名称包装入口对象"""

    def __init__(self, name: str, target: Any):
        self.name = name
        self.apply = get_plugin_apply(target)
