"""
Bootstrap page generator tests.

Run: python -m pytest test/test_bootstrap_page.py -v
"""

import shutil
import sys
import tempfile
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from bridge.server.bootstrapPage import (
    renderBootstrapPage, bundleFilesFor, TOOLBAR_ACTIONS, UI_BASE_URIS, RECONNECT_DELAY_MS
)


@pytest.fixture
def tempDir():
    buildDir = Path(tempfile.mkdtemp())
    yield buildDir
    shutil.rmtree(buildDir, ignore_errors=True)


class TestBundleFiles:
    """Bundle detection in the build directory"""

    def test_missing_build(self, tempDir):
        assert bundleFilesFor(tempDir / 'nope') == ('', '')

    def test_js_only(self, tempDir):
        (tempDir / 'assets').mkdir()
        (tempDir / 'assets' / 'index.js').write_text('x')
        assert bundleFilesFor(tempDir) == ('/assets/index.js', '')

    def test_both(self, tempDir):
        (tempDir / 'assets').mkdir()
        (tempDir / 'assets' / 'index.js').write_text('x')
        (tempDir / 'assets' / 'index.css').write_text('x')
        assert bundleFilesFor(tempDir) == ('/assets/index.js', '/assets/index.css')


class TestRenderBootstrapPage:
    """Generated document"""

    def test_pure(self):
        assert renderBootstrapPage('/a.js', '/a.css') == renderBootstrapPage('/a.js', '/a.css')

    def test_bundle_tags_only_when_given(self):
        """Empty argument means no tag at all"""
        bare = renderBootstrapPage()
        assert '<script type="module"' not in bare
        assert '<link rel="stylesheet" type="text/css"' not in bare

        full = renderBootstrapPage('/assets/index.js', '/assets/index.css')
        assert '<script type="module" src="/assets/index.js"></script>' in full
        assert '<link rel="stylesheet" type="text/css" href="/assets/index.css">' in full

        jsOnly = renderBootstrapPage('/assets/index.js', '')
        assert 'src="/assets/index.js"' in jsOnly
        assert 'href="/assets/index.css"' not in jsOnly

    def test_fixed_structure(self):
        page = renderBootstrapPage()
        assert page.startswith('<!DOCTYPE html>')
        assert '<div id="root"></div>' in page
        assert 'id="roo-ws-status">Connecting...</span>' in page
        assert '/ext-assets/codicons/codicon.css' in page
        assert '--vscode-editor-background: #1e1e1e;' in page

    def test_toolbar_buttons(self):
        page = renderBootstrapPage()
        actions = [entry[0] for entry in TOOLBAR_ACTIONS if entry is not None]
        assert actions == ['newTask', 'history', 'marketplace', 'settings', 'cloud']
        for entry in TOOLBAR_ACTIONS:
            if entry is None:
                continue
            action, elementId, _, icon = entry
            assert f'id="{elementId}" data-action="{action}"' in page
            assert f'codicon-{icon}' in page

    def test_base_uri_globals(self):
        page = renderBootstrapPage()
        for name, value in UI_BASE_URIS.items():
            assert f'window.{name} = "{value}";' in page

    def test_client_script(self):
        """Single published transport handle with the fixed reconnect delay"""
        page = renderBootstrapPage()
        assert page.count('window.__rooWebSocket = ') == 1
        assert f'setTimeout(connect, {RECONNECT_DELAY_MS})' in page
        assert '__RECONNECT_DELAY_MS__' not in page
        assert "'extension-message'" in page
        assert "type: 'toolbar-action'" in page
        assert "type: 'webview-message'" in page

    def test_paths_are_escaped(self):
        page = renderBootstrapPage('/a.js"><script>', '')
        assert '"><script>' not in page.split('<script type="module"', 1)[1].split('</script>', 1)[0]
