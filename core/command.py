# core/command.py
# 指令定义解析、参数解析和指令表

import inspect
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
from logger_config import get_logger

logger = get_logger("Command")

Options = Dict[str, Union[str, bool]]
CommandAction = Callable[[Options, List[str], Any], Any]

_SHORT_OPTION = re.compile(r'^-(\w)\s*')


@dataclass
class CommandArg:
    name: str
    required: bool


@dataclass
class CommandOption:
    name: str
    description: str
    short: Optional[str] = None


@dataclass
class ParsedArgs:
    args: List[str] = field(default_factory=list)
    options: Options = field(default_factory=dict)


class Command:
    """一条指令

    定义字符串形如 "echo <message> [times]"：
    第一个词是指令名，<arg> 是必选参数，[arg] 是可选参数。
    """

    def __init__(self, definition: str, description: str = ""):
        parts = definition.split()
        if not parts:
            raise ValueError("指令定义不能为空")

        self.name = parts[0]
        self.description = description
        self.arguments: List[CommandArg] = []
        self.options: List[CommandOption] = []
        self._action: Optional[CommandAction] = None

        for part in parts[1:]:
            if part.startswith('<') and part.endswith('>'):
                self.arguments.append(CommandArg(part[1:-1], True))
            elif part.startswith('[') and part.endswith(']'):
                self.arguments.append(CommandArg(part[1:-1], False))

    def option(self, name: str, description: str = "") -> 'Command':
        """添加选项，描述以 "-x " 开头时 x 作为短选项名"""
        short = None
        match = _SHORT_OPTION.match(description)
        if match:
            short = match.group(1)
            description = description[match.end():]
        self.options.append(CommandOption(name, description, short))
        return self

    def action(self, callback: CommandAction) -> 'Command':
        """设置指令处理函数 callback(options, args, session)

        返回字符串时自动作为回复发送。也可作为装饰器使用。
        """
        self._action = callback
        return self

    async def execute(self, tokens: List[str], session: Any):
        """执行指令

        Args:
            tokens: 指令名之后的所有词
            session: 会话对象
        """
        if self._action is None:
            return

        parsed = self.parse_args(tokens)
        result = self._action(parsed.options, parsed.args, session)
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, str):
            await session.send(result)

    def parse_args(self, tokens: List[str]) -> ParsedArgs:
        """把词列表解析为位置参数和选项"""
        parsed = ParsedArgs()
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if token.startswith('--'):
                if '=' in token:
                    name, value = token[2:].split('=', 1)
                    parsed.options[name] = value
                else:
                    name = token[2:]
                    following = tokens[i + 1] if i + 1 < len(tokens) else None
                    if following and not following.startswith('-'):
                        parsed.options[name] = following
                        i += 1
                    else:
                        parsed.options[name] = True
            elif token.startswith('-') and len(token) == 2:
                short = token[1]
                option = next((o for o in self.options if o.short == short), None)
                parsed.options[option.name if option else short] = True
            else:
                parsed.args.append(token)
            i += 1
        return parsed

    def get_help(self) -> str:
        """生成单条指令的帮助文本"""
        line = f"  {self.name}"
        for arg in self.arguments:
            line += f" <{arg.name}>" if arg.required else f" [{arg.name}]"
        line += f"  -  {self.description}"

        if self.options:
            line += "\n    选项："
            for opt in self.options:
                short = f"-{opt.short}, " if opt.short else "    "
                line += f"\n      {short}--{opt.name}  {opt.description}"
        return line

    def __repr__(self) -> str:
        return f"Command(name={self.name}, args={len(self.arguments)}, options={len(self.options)})"


class CommandManager:
    """指令表，指令名 -> 指令

    同名注册时后者覆盖前者；移除按名称进行。
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self._commands: Dict[str, Command] = {}

    def register(self, definition: str, description: str = "") -> Command:
        """注册指令

        Args:
            definition: 指令定义字符串
            description: 指令描述

        Returns:
            指令对象
        """
        command = Command(definition, description)
        if command.name in self._commands:
            logger.warning(f"指令 {command.name} 已存在，将被覆盖")
        self._commands[command.name] = command
        logger.debug(f"注册指令: {command.name}")
        return command

    def remove(self, name: str):
        if self._commands.pop(name, None) is not None:
            logger.debug(f"移除指令: {name}")

    def find(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    async def execute(self, content: str, session: Any) -> bool:
        """匹配并执行指令

        Args:
            content: 消息文本
            session: 会话对象

        Returns:
            是否匹配到指令
        """
        content = content.strip()
        if self.prefix:
            if not content.startswith(self.prefix):
                return False
            content = content[len(self.prefix):]

        tokens = content.split()
        if not tokens:
            return False

        command = self._commands.get(tokens[0])
        if command is None:
            return False

        logger.debug(f"执行指令 {command.name}，参数: {tokens[1:]}")
        await command.execute(tokens[1:], session)
        return True

    def get_help(self) -> str:
        """生成所有指令的帮助文本"""
        if not self._commands:
            return "暂无已注册指令"
        lines = ["可用指令列表："]
        lines.extend(command.get_help() for command in self._commands.values())
        return "\n".join(lines)

    def get_command_names(self) -> List[str]:
        return list(self._commands.keys())

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: str) -> bool:
        return name in self._commands
