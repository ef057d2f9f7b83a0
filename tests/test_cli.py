import json

import pytest
import yaml
from click.testing import CliRunner

from pocket_ledger.cli import main as cli


@pytest.fixture
def invoke(tmp_path, monkeypatch):
    monkeypatch.delenv("POCKET_LEDGER_DATA_FILE", raising=False)
    monkeypatch.delenv("POCKET_LEDGER_LOG_LEVEL", raising=False)
    runner = CliRunner()
    base = [
        '--config', str(tmp_path / 'pocketledger.yaml'),
        '--data-file', str(tmp_path / 'ledger.json'),
    ]

    def _invoke(*args):
        return runner.invoke(cli, base + list(args))

    return _invoke


def test_add_and_balance(invoke, tmp_path):
    res = invoke('add', 'income', 'Salary', '50000', '-d', 'November')
    assert res.exit_code == 0, res.output
    assert 'Added income of 50000.00 in Salary.' in res.output

    assert invoke('add', 'expense', 'Food', '5000').exit_code == 0
    assert invoke('add', 'EXPENSE', 'Transport', '3000').exit_code == 0

    res = invoke('balance')
    assert res.exit_code == 0, res.output
    assert 'Balance: 42000.00' in res.output

    data = json.loads((tmp_path / 'ledger.json').read_text())
    assert [t['category'] for t in data['transactions']] == ['Salary', 'Food', 'Transport']


@pytest.mark.parametrize(
    'amount, message',
    [('0', 'amount must be positive'), ('ten', 'amount must be a number')],
)
def test_add_rejects_bad_amount(invoke, amount, message):
    res = invoke('add', 'expense', 'Food', amount)
    assert res.exit_code == 2
    assert message in res.output


def test_add_rejects_blank_category(invoke):
    res = invoke('add', 'expense', '  ', '10')
    assert res.exit_code == 2
    assert 'category must not be empty' in res.output


def test_history_newest_first(invoke):
    res = invoke('history')
    assert res.exit_code == 0
    assert 'No transactions recorded.' in res.output

    invoke('add', 'income', 'Salary', '100')
    invoke('add', 'expense', 'Food', '40', '-d', 'groceries')
    res = invoke('history')
    assert res.exit_code == 0, res.output
    lines = [l for l in res.output.splitlines() if "Food" in l or "Salary" in l]
    assert len(lines) == 2
    assert 'Food' in lines[0] and ' -40.00  groceries' in lines[0]
    assert 'Salary' in lines[1] and '+100.00' in lines[1]


def test_history_limit(invoke):
    for n in range(3):
        invoke('add', 'expense', f'Cat{n}', '1')
    res = invoke('history', '--limit', '2')
    assert res.exit_code == 0
    assert '... and 1 more' in res.output


def test_history_by_month_with_no_match(invoke):
    invoke('add', 'expense', 'Food', '1')
    res = invoke('history', '--month', '1', '--year', '1999')
    assert res.exit_code == 0
    assert 'No transactions recorded.' in res.output


def test_stats_sorts_by_total(invoke):
    invoke('add', 'expense', 'Food', '1000')
    invoke('add', 'expense', 'Food', '2000')
    invoke('add', 'expense', 'Rent', '2500')

    res = invoke('stats')
    assert res.exit_code == 0, res.output
    assert 'No income in this period' in res.output
    assert res.output.index('Food') < res.output.index('Rent')
    assert 'Largest expense category: Food (3000.00)' in res.output
    assert 'Balance: -5500.00' in res.output


def test_budget_set_and_show(invoke):
    res = invoke('budget', 'show')
    assert 'No budget set.' in res.output

    res = invoke('budget', 'set', '10000')
    assert res.exit_code == 0, res.output

    invoke('add', 'expense', 'Food', '3000')
    invoke('add', 'expense', 'Transport', '2000')

    res = invoke('budget', 'show')
    assert res.exit_code == 0, res.output
    assert 'Spent: 5000.00 (50.0%)' in res.output
    assert 'Remaining: 5000.00' in res.output

    invoke('add', 'expense', 'Food', '6000')
    res = invoke('balance')
    assert 'Budget exceeded!' in res.output


def test_budget_show_uses_the_budget_month(invoke):
    invoke('add', 'expense', 'Food', '50')
    invoke('budget', 'set', '700', '--month', '2', '--year', '2001')
    res = invoke('budget', 'show')
    assert res.exit_code == 0, res.output
    assert 'Budget for 02/2001: 700.00' in res.output
    assert 'Spent: 0.00 (0.0%)' in res.output

    res = invoke('balance')
    assert 'Spent' not in res.output


def test_zero_budget_is_only_listed(invoke):
    invoke('budget', 'set', '0')
    res = invoke('budget', 'show')
    assert res.exit_code == 0, res.output
    assert ': 0.00' in res.output
    assert 'Spent' not in res.output


def test_negative_budget_is_rejected(invoke):
    res = invoke('budget', 'set', '--', '-1')
    assert res.exit_code == 2
    assert 'budget must not be negative' in res.output


def test_categories(invoke):
    res = invoke('categories', 'add', 'Travel')
    assert res.exit_code == 0, res.output
    invoke('categories', 'add', 'Travel')

    res = invoke('categories', 'list')
    assert res.exit_code == 0
    assert 'Food' in res.output
    assert res.output.count('Travel') == 1

    res = invoke('categories', 'list', '--kind', 'income')
    assert 'Salary' in res.output

    res = invoke('categories', 'add', '   ')
    assert res.exit_code == 2


def test_save_failure_exit_code(tmp_path, monkeypatch):
    monkeypatch.delenv("POCKET_LEDGER_DATA_FILE", raising=False)
    blocker = tmp_path / 'blocker'
    blocker.write_text('not a dir')
    res = CliRunner().invoke(
        cli,
        [
            '--config', str(tmp_path / 'pocketledger.yaml'),
            '--data-file', str(blocker / 'ledger.json'),
            'add', 'income', 'Salary', '10',
        ],
    )
    assert res.exit_code == 1
    assert 'Could not write' in res.output


def test_data_file_from_env_file(tmp_path, monkeypatch):
    # load_dotenv writes to os.environ; register the key so it is undone
    monkeypatch.setenv("POCKET_LEDGER_DATA_FILE", "placeholder")
    monkeypatch.delenv("POCKET_LEDGER_DATA_FILE")
    target = tmp_path / 'from_env.json'
    env_file = tmp_path / '.env'
    env_file.write_text(f'POCKET_LEDGER_DATA_FILE={target}\n')

    res = CliRunner().invoke(
        cli,
        [
            '--config', str(tmp_path / 'pocketledger.yaml'),
            '--env-file', str(env_file),
            'categories', 'add', 'Pets',
        ],
    )
    assert res.exit_code == 0, res.output
    assert json.loads(target.read_text())['custom_categories'] == ['Pets']


def test_init_config(invoke, tmp_path):
    res = invoke('init-config')
    assert res.exit_code == 0, res.output
    assert (tmp_path / 'pocketledger.yaml').exists()

    res = invoke('init-config')
    assert res.exit_code == 1
    assert 'already exists' in res.output

    assert invoke('init-config', '--force').exit_code == 0


@pytest.mark.parametrize('content', ['- a\n- list\n', 'data_file: [unclosed\n'])
def test_bad_config_is_reported_without_traceback(tmp_path, monkeypatch, content):
    monkeypatch.delenv("POCKET_LEDGER_DATA_FILE", raising=False)
    cfg = tmp_path / 'pocketledger.yaml'
    cfg.write_text(content)

    res = CliRunner().invoke(cli, ['--config', str(cfg), 'balance'])

    assert res.exit_code == 1
    assert 'Invalid config' in res.output
    assert not isinstance(res.exception, (ValueError, yaml.YAMLError))
