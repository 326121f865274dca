from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from issuequeue import cli, env_auth
from issuequeue.cache_store import load_cache, persist_cache
from issuequeue.github_rest import GitHubAPIError


def make_record(record_id: int, title: str, updated_at: str = '2024-01-01T00:00:00Z', **extra: Any) -> dict[str, Any]:
    record = {
        'id': record_id,
        'number': record_id,
        'title': title,
        'state': 'open',
        'updated_at': updated_at,
        'html_url': f'https://github.com/acme/widgets/issues/{record_id}',
        'repository_url': 'https://api.github.com/repos/acme/widgets',
        'user': {'login': 'someone', 'type': 'User'},
    }
    record.update(extra)
    return record


class _FakeRestClient:
    issues: dict[int, Any] = {}

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs

    def get_issue(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        value = self.issues[number]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture(autouse=True)
def _workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for var in ('GITHUB_TOKEN', 'GH_TOKEN', 'GITHUB_ACCESS_TOKEN', 'GH_ACCESS_TOKEN', 'GITHUB_PAT'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(cli, 'GitHubRestClient', _FakeRestClient)
    _FakeRestClient.issues = {}
    return tmp_path


@pytest.fixture
def cache_file(_workspace: Path) -> Path:
    return _workspace / 'acme-issues-prs.json'


def _set_fresh(monkeypatch: pytest.MonkeyPatch, records: list[dict[str, Any]] | Exception) -> None:
    def fake_fetch(client: Any, cfg: Any) -> list[dict[str, Any]]:
        if isinstance(records, Exception):
            raise records
        return list(records)

    monkeypatch.setattr(cli, 'fetch_open_items', fake_fetch)


def test_sync_bootstraps_and_writes_cache(monkeypatch, capsys, cache_file):
    _set_fresh(
        monkeypatch,
        [
            make_record(3, 'Three', '2024-01-03T00:00:00Z'),
            make_record(1, 'One', '2024-01-01T00:00:00Z'),
            make_record(2, 'Two', '2024-01-02T00:00:00Z'),
        ],
    )

    rc = cli.main(['sync', '--org', 'acme', '--list'])

    out = capsys.readouterr().out
    assert rc == 0
    assert 'Initial load: 3' in out
    assert [r['id'] for r in load_cache(cache_file)] == [1, 3, 2]
    assert out.index('One') < out.index('Three') < out.index('Two')
    assert '#1 - widgets' in out


def test_sync_incremental_summary(monkeypatch, capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One'), make_record(2, 'Two')])
    _set_fresh(monkeypatch, [make_record(2, 'Two'), make_record(4, 'Four')])

    rc = cli.main(['sync', '--org', 'acme'])

    assert rc == 0
    assert 'kept=1, added=1, pruned=1' in capsys.readouterr().out
    assert [r['id'] for r in load_cache(cache_file)] == [2, 4]


def test_sync_failure_keeps_cache_and_exits_nonzero(monkeypatch, capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One')])
    _set_fresh(monkeypatch, GitHubAPIError('failed with 401', status=401, response_text='Bad credentials'))

    rc = cli.main(['sync', '--org', 'acme', '--list'])

    captured = capsys.readouterr()
    assert rc == 1
    assert 'github.auth' in captured.err
    assert 'One' in captured.out
    assert [r['id'] for r in load_cache(cache_file)] == [1]


def test_list_with_search_and_json(capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'Fix login'), make_record(2, 'Docs typo', pull_request={'url': 'x'})])

    assert cli.main(['list', '--org', 'acme', '--search', 'docs']) == 0
    out = capsys.readouterr().out
    assert 'Docs typo' in out and 'Fix login' not in out
    assert '#2 - widgets (PR)' in out

    assert cli.main(['list', '--org', 'acme', '--json', '--limit', '1']) == 0
    data = json.loads(capsys.readouterr().out)
    assert [r['id'] for r in data] == [1]


def test_list_reports_no_matches(capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'Fix login')])

    assert cli.main(['list', '--org', 'acme', '--search', 'zzz']) == 0
    assert 'No results matching "zzz"' in capsys.readouterr().out


def test_list_empty_queue(capsys):
    assert cli.main(['list', '--org', 'acme']) == 0
    assert 'No open issues or PRs found.' in capsys.readouterr().out


def test_refresh_updates_record(capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One'), make_record(2, 'Two'), make_record(3, 'Three')])
    _FakeRestClient.issues = {2: make_record(2, 'Two (renamed)')}

    assert cli.main(['refresh', '--org', 'acme', '2']) == 0
    assert 'updated: Two (renamed)' in capsys.readouterr().out
    assert [r['title'] for r in load_cache(cache_file)] == ['One', 'Two (renamed)', 'Three']


def test_refresh_removes_closed_record(capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One'), make_record(2, 'Two')])
    _FakeRestClient.issues = {1: make_record(1, 'One', state='closed')}

    assert cli.main(['refresh', '--org', 'acme', '1']) == 0
    assert 'removed from queue' in capsys.readouterr().out
    assert [r['id'] for r in load_cache(cache_file)] == [2]


def test_refresh_failure_and_unknown(capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One')])
    _FakeRestClient.issues = {1: GitHubAPIError('failed with 502', status=502)}

    assert cli.main(['refresh', '--org', 'acme', '1']) == 1
    assert cli.main(['refresh', '--org', 'acme', '99']) == 2
    assert [r['title'] for r in load_cache(cache_file)] == ['One']


def test_open_launches_browser(monkeypatch, capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One')])
    opened: list[str] = []
    monkeypatch.setattr(cli.webbrowser, 'open', lambda url: opened.append(url) or True)

    assert cli.main(['open', '--org', 'acme', '1']) == 0
    assert opened == ['https://github.com/acme/widgets/issues/1']
    assert cli.main(['open', '--org', 'acme', '5']) == 2


def test_doctor_reports_status(capsys, cache_file):
    persist_cache(cache_file, [make_record(1, 'One')])

    assert cli.main(['doctor', '--org', 'acme']) == 0
    out = capsys.readouterr().out
    assert 'acme-issues-prs.json' in out
    assert 'cached records' in out
    assert 'No GitHub token found' in out
    assert 'Set GITHUB_TOKEN environment variable' in out
    assert 'dotenv loaded' in out


def test_missing_explicit_config_exits_2(capsys):
    assert cli.main(['list', '--config', 'missing.yaml']) == 2
    assert 'Configuration file not found' in capsys.readouterr().err


def test_config_file_drives_org_and_cache(capsys, _workspace):
    (_workspace / 'issuequeue.config.yaml').write_text(
        'github:\n  org: widgetco\ncache:\n  directory: .cache\n', encoding='utf-8'
    )
    persist_cache(_workspace / '.cache' / 'widgetco-issues-prs.json', [make_record(1, 'From config')])

    assert cli.main(['list']) == 0
    assert 'From config' in capsys.readouterr().out


def test_doctor_loads_dotenv_once_and_uses_its_token(monkeypatch, capsys, _workspace):
    (_workspace / '.env').write_text('GITHUB_TOKEN=from-dotenv\n', encoding='utf-8')
    loads: list[str] = []

    def fake_load_dotenv(path: str, override: bool = False) -> bool:
        loads.append(path)
        monkeypatch.setenv('GITHUB_TOKEN', 'from-dotenv')
        return True

    monkeypatch.setattr(env_auth, 'load_dotenv', fake_load_dotenv)

    assert cli.main(['doctor', '--org', 'acme']) == 0
    out = capsys.readouterr().out
    assert loads == ['.env']
    assert 'No GitHub token found' not in out
