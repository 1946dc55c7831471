"""
Bootstrap page for browser access to the webview UI.

renderBootstrapPage() is a pure function of the two bundle paths: the rest
of the document is fixed. The page carries the editor theme variables, a
toolbar, a connection status widget, the #root mount for the UI bundle and
an inline client that owns the single bridge WebSocket.

Property of Uncompromising Sensors LLC.
"""

import html
from pathlib import Path
from typing import List, Tuple

PRODUCT_NAME = 'Roo Code'
RECONNECT_DELAY_MS = 2000

# Vite always emits these as the main entry points
BUNDLE_JS = 'assets/index.js'
BUNDLE_CSS = 'assets/index.css'

# (action, element id, title, codicon); None marks a separator
TOOLBAR_ACTIONS = [
    ('newTask', 'roo-btn-new-task', 'New Task', 'edit'),
    ('history', 'roo-btn-history', 'Task History', 'history'),
    ('marketplace', 'roo-btn-marketplace', 'Marketplace', 'extensions'),
    None,
    ('settings', 'roo-btn-settings', 'Settings', 'settings-gear'),
    ('cloud', 'roo-btn-cloud', 'Cloud', 'cloud'),
]

# Globals the UI bundle reads to locate assets outside the editor
UI_BASE_URIS = {
    'IMAGES_BASE_URI': '/ext-assets/images',
    'AUDIO_BASE_URI': '/audio',
    'MATERIAL_ICONS_BASE_URI': '/ext-assets/vscode-material-icons/icons',
}

THEME_VARIABLES = {
    'font-family': '-apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif',
    'font-size': '13px',
    'editor-background': '#1e1e1e',
    'editor-foreground': '#d4d4d4',
    'foreground': '#cccccc',
    'sideBar-background': '#252526',
    'sideBar-foreground': '#cccccc',
    'sideBar-border': '#2d2d2d',
    'titleBar-activeBackground': '#3c3c3c',
    'titleBar-activeForeground': '#cccccc',
    'titleBar-border': '#2d2d2d',
    'button-background': '#0e639c',
    'button-foreground': '#ffffff',
    'button-hoverBackground': '#1177bb',
    'button-secondaryBackground': '#3a3d41',
    'button-secondaryForeground': '#cccccc',
    'input-background': '#3c3c3c',
    'input-foreground': '#cccccc',
    'input-border': '#3c3c3c',
    'focusBorder': '#007fd4',
    'badge-background': '#4d4d4d',
    'badge-foreground': '#cccccc',
    'list-hoverBackground': '#2a2d2e',
    'list-hoverForeground': '#cccccc',
    'list-activeSelectionBackground': '#094771',
    'list-activeSelectionForeground': '#ffffff',
    'list-focusBackground': '#062f4a',
    'scrollbarSlider-background': 'rgba(121,121,121,0.4)',
    'scrollbarSlider-hoverBackground': 'rgba(100,100,100,0.7)',
    'scrollbarSlider-activeBackground': 'rgba(191,191,191,0.4)',
    'toolbar-hoverBackground': 'rgba(90,93,94,0.31)',
    'toolbar-activeBackground': 'rgba(99,102,103,0.31)',
    'descriptionForeground': '#8b949e',
    'errorForeground': '#f48771',
    'textLink-foreground': '#3794ff',
    'textCodeBlock-background': '#1e1e1e',
    'menu-background': '#252526',
    'menu-foreground': '#cccccc',
    'notifications-background': '#252526',
    'notifications-foreground': '#cccccc',
    'notifications-border': '#2d2d2d',
    'panel-border': '#2d2d2d',
    'editorGroup-border': '#444444',
    'editorWarning-foreground': '#cca700',
    'editorWarning-background': 'rgba(204,167,0,0.1)',
    'dropdown-background': '#3c3c3c',
    'dropdown-foreground': '#cccccc',
    'dropdown-border': '#3c3c3c',
    'disabledForeground': 'rgba(204,204,204,0.5)',
    'widget-border': '#454545',
    'widget-shadow': 'rgba(0,0,0,0.36)',
    'charts-red': '#f14c4c',
    'charts-blue': '#3794ff',
    'charts-yellow': '#cca700',
    'charts-orange': '#d18616',
    'charts-green': '#89d185',
    'diffEditor-insertedTextBackground': 'rgba(9,73,11,0.4)',
    'diffEditor-removedTextBackground': 'rgba(94,0,0,0.4)',
    'inputValidation-infoBackground': '#063b49',
    'inputValidation-infoBorder': '#007acc',
    'inputValidation-warningBackground': '#352a05',
    'inputValidation-warningBorder': '#b89500',
    'editorHoverWidget-background': '#252526',
    'editorHoverWidget-foreground': '#cccccc',
    'editorHoverWidget-border': '#454545',
    'banner-background': '#04395e',
    'banner-foreground': '#cccccc',
    'sideBarSectionHeader-background': '#00000000',
    'sideBarSectionHeader-foreground': '#cccccc',
    'sideBarSectionHeader-border': 'rgba(204,204,204,0.2)',
}

_LAYOUT_CSS = """
    #roo-web-toolbar {
      display: flex;
      align-items: center;
      gap: 4px;
      padding: 4px 8px;
      background: var(--vscode-titleBar-activeBackground, #3c3c3c);
      border-bottom: 1px solid var(--vscode-titleBar-border, #2d2d2d);
      position: sticky;
      top: 0;
      z-index: 9999;
      flex-shrink: 0;
    }
    #roo-web-toolbar .roo-tb-btn {
      display: flex;
      align-items: center;
      justify-content: center;
      width: 28px;
      height: 28px;
      border: none;
      background: transparent;
      color: var(--vscode-titleBar-activeForeground, #cccccc);
      cursor: pointer;
      border-radius: 4px;
      font-size: 16px;
      padding: 0;
      transition: background 0.15s;
    }
    #roo-web-toolbar .roo-tb-btn:hover {
      background: var(--vscode-toolbar-hoverBackground, rgba(255,255,255,0.1));
    }
    #roo-web-toolbar .roo-tb-separator {
      width: 1px;
      height: 20px;
      background: var(--vscode-titleBar-border, #2d2d2d);
      margin: 0 4px;
    }
    #roo-web-toolbar .roo-tb-title {
      font-size: 12px;
      font-weight: 600;
      color: var(--vscode-titleBar-activeForeground, #cccccc);
      margin-right: 4px;
      font-family: var(--vscode-font-family, sans-serif);
      letter-spacing: 0.5px;
    }
    #roo-web-toolbar .roo-tb-spacer {
      flex: 1;
    }
    #roo-web-toolbar .roo-tb-status {
      font-size: 11px;
      color: var(--vscode-descriptionForeground, #8b949e);
      font-family: var(--vscode-font-family, sans-serif);
    }
    html, body {
      margin: 0;
      padding: 0;
      height: 100%;
      display: flex;
      flex-direction: column;
      background-color: var(--vscode-editor-background, #1e1e1e);
      color: var(--vscode-editor-foreground, #d4d4d4);
      font-family: var(--vscode-font-family, sans-serif);
      font-size: var(--vscode-font-size, 13px);
    }
    #root {
      flex: 1;
      overflow: auto;
      min-height: 0;
      background-color: var(--vscode-editor-background, #1e1e1e);
    }
"""

# One transport handle per page. The toolbar and status widget receive it
# explicitly; the UI bundle finds the same handle on window.__rooWebSocket.
_CLIENT_SCRIPT = """
    (function() {
      function createBridgeTransport(onStatus) {
        var ws = null;
        var reconnectTimer = null;

        function connect() {
          var scheme = window.location.protocol === 'https:' ? 'wss://' : 'ws://';
          ws = new WebSocket(scheme + window.location.host);

          ws.addEventListener('open', function() {
            onStatus('Connected', '#4ec9b0');
          });

          ws.addEventListener('close', function() {
            onStatus('Disconnected', '#f48771');
            ws = null;
            if (reconnectTimer) clearTimeout(reconnectTimer);
            reconnectTimer = setTimeout(connect, __RECONNECT_DELAY_MS__);
          });

          ws.addEventListener('error', function() {
            onStatus('Error', '#f48771');
          });

          ws.addEventListener('message', function(event) {
            try {
              var data = JSON.parse(event.data);
              if (data.type === 'extension-message' && data.payload) {
                window.dispatchEvent(new MessageEvent('message', { data: data.payload }));
              }
            } catch (e) {}
          });
        }

        function sendEnvelope(envelope) {
          if (ws && ws.readyState === WebSocket.OPEN) {
            ws.send(JSON.stringify(envelope));
            return true;
          }
          return false;
        }

        connect();

        return {
          getWs: function() { return ws; },
          send: function(msg) {
            return sendEnvelope({ type: 'webview-message', payload: msg });
          },
          sendToolbarAction: function(action) {
            return sendEnvelope({ type: 'toolbar-action', action: action });
          }
        };
      }

      function createStatusWidget(el) {
        return function(text, color) {
          if (el) {
            el.textContent = text;
            el.style.color = color || '';
          }
        };
      }

      function wireToolbar(toolbar, transport) {
        var buttons = toolbar ? toolbar.querySelectorAll('[data-action]') : [];
        Array.prototype.forEach.call(buttons, function(button) {
          button.addEventListener('click', function() {
            transport.sendToolbarAction(button.getAttribute('data-action'));
          });
        });
      }

      var transport = createBridgeTransport(
        createStatusWidget(document.getElementById('roo-ws-status'))
      );
      wireToolbar(document.getElementById('roo-web-toolbar'), transport);

      if (!window.__rooWebSocket) {
        window.__rooWebSocket = { getWs: transport.getWs, send: transport.send };
      }
    })();
"""


def bundleFilesFor(buildDir: Path) -> Tuple[str, str]:
    """URL paths of the built JS/CSS entry points, '' for each one missing"""
    buildDir = Path(buildDir)
    jsFile = f"/{BUNDLE_JS}" if (buildDir / BUNDLE_JS).is_file() else ""
    cssFile = f"/{BUNDLE_CSS}" if (buildDir / BUNDLE_CSS).is_file() else ""
    return jsFile, cssFile


def _themeCss() -> str:
    lines = ['    :root {', '      color-scheme: dark;']
    lines.extend(f"      --vscode-{name}: {value};" for name, value in THEME_VARIABLES.items())
    lines.append('    }')
    return '\n'.join(lines)


def _toolbarHtml() -> str:
    parts: List[str] = [
        '  <div id="roo-web-toolbar">',
        f'    <span class="roo-tb-title">{html.escape(PRODUCT_NAME)}</span>',
        '    <div class="roo-tb-separator"></div>',
    ]
    for entry in TOOLBAR_ACTIONS:
        if entry is None:
            parts.append('    <div class="roo-tb-separator"></div>')
            continue
        action, elementId, title, icon = entry
        parts.append(
            f'    <button class="roo-tb-btn" id="{elementId}" data-action="{action}" title="{html.escape(title)}">'
            f'<i class="codicon codicon-{icon}"></i></button>'
        )
    parts.extend([
        '    <div class="roo-tb-spacer"></div>',
        '    <span class="roo-tb-status" id="roo-ws-status">Connecting...</span>',
        '  </div>',
    ])
    return '\n'.join(parts)


def _baseUriScript() -> str:
    assignments = '\n'.join(f'    window.{name} = "{value}";' for name, value in UI_BASE_URIS.items())
    return f"  <script>\n{assignments}\n  </script>"


def renderBootstrapPage(jsFile: str = "", cssFile: str = "") -> str:
    """
    Build the bootstrap HTML document.

    Args:
        jsFile: URL of the UI bundle script, omitted when empty
        cssFile: URL of the UI bundle stylesheet, omitted when empty
    """
    cssTag = f'  <link rel="stylesheet" type="text/css" href="{html.escape(cssFile)}">\n' if cssFile else ''
    jsTag = f'  <script type="module" src="{html.escape(jsFile)}"></script>\n' if jsFile else ''
    script = _CLIENT_SCRIPT.replace('__RECONNECT_DELAY_MS__', str(RECONNECT_DELAY_MS))

    return (
        '<!DOCTYPE html>\n'
        '<html lang="en">\n'
        '<head>\n'
        '  <meta charset="utf-8">\n'
        '  <meta name="viewport" content="width=device-width,initial-scale=1,shrink-to-fit=no">\n'
        '  <meta name="theme-color" content="#1e1e1e">\n'
        f'  <title>{html.escape(PRODUCT_NAME)}</title>\n'
        f'{cssTag}'
        '  <link href="/ext-assets/codicons/codicon.css" rel="stylesheet" />\n'
        '  <style>\n'
        f'{_themeCss()}\n'
        f'{_LAYOUT_CSS}'
        '  </style>\n'
        f'{_baseUriScript()}\n'
        '</head>\n'
        '<body>\n'
        f'{_toolbarHtml()}\n'
        '  <noscript>You need to enable JavaScript to run this app.</noscript>\n'
        '  <div id="root"></div>\n'
        f'  <script>{script}  </script>\n'
        f'{jsTag}'
        '</body>\n'
        '</html>\n'
    )
