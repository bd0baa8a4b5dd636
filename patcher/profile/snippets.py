"""Marker lines and managed snippets written into the PowerShell profile."""

import re

TAG = "inherit-cwd"

PROMPT_DISABLED_MARKER = f"# [{TAG}] custom prompt disabled, oh-my-posh renders the prompt"
DUPLICATE_INIT_MARKER = f"# [{TAG}] duplicate oh-my-posh init disabled"

MANAGED_BLOCK_RE = re.compile(
    rf"^# >>> {TAG}:(?P<name>[\w-]+) >>>[ \t]*\r?$.*?^# <<< {TAG}:(?P=name) <<<[ \t]*\r?$",
    re.MULTILINE | re.DOTALL,
)

PROFILE_DIR_EXPR = "$(Split-Path -Parent $PROFILE)"

INIT_LINE_TEMPLATE = 'oh-my-posh init pwsh --config "{path}" | Invoke-Expression'


def block_start(name: str) -> str:
    return f"# >>> {TAG}:{name} >>>"


def block_end(name: str) -> str:
    return f"# <<< {TAG}:{name} <<<"


def managed_block(name: str, body: str) -> str:
    return "\n".join([block_start(name), body.strip("\n"), block_end(name)])


OSC99_SNIPPET = "osc99"
OSC99_BODY = r"""
$__inheritCwdPrompt = $function:prompt
function global:prompt {
    $loc = $executionContext.SessionState.Path.CurrentLocation
    $osc = ""
    if ($loc.Provider.Name -eq "FileSystem") {
        $osc = "$([char]27)]9;9;`"$($loc.ProviderPath)`"$([char]27)\"
    }
    $osc + (& $__inheritCwdPrompt)
}
"""

COPILOT_SNIPPET = "copilot"
COPILOT_BODY = """
function ghcs { gh copilot suggest -t shell @args }
function ghce { gh copilot explain @args }
"""
