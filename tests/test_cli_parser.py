"""Tests for the CLI command parser."""

import pytest

from cli.models import (
    DeleteCommand,
    ListCommand,
    RetryCommand,
    SyncCommand,
    UploadCommand,
    UseCommand,
    WaitCommand,
    WhoamiCommand,
)
from cli.parser import ParseError, parse_command


def test_parse_upload_with_quoted_paths():
    cmd = parse_command('upload a.txt "my photo.png" ~/b.pdf')

    assert cmd == UploadCommand(file_list=('a.txt', 'my photo.png', '~/b.pdf'))


@pytest.mark.parametrize('line, expected', [
    ('list', ListCommand()),
    ('LIST', ListCommand()),
    ('sync', SyncCommand()),
    ('wait', WaitCommand()),
    ('whoami', WhoamiCommand()),
    ('delete abc123', DeleteCommand(unit_ref='abc123')),
    ('retry tmp_9f', RetryCommand(unit_ref='tmp_9f')),
    ('use owner-1', UseCommand(owner_id='owner-1')),
])
def test_parse_commands(line, expected):
    assert parse_command(line) == expected


@pytest.mark.parametrize('line, message', [
    ('', 'Empty command'),
    ('   ', 'Empty command'),
    ('upload', 'upload requires at least one file'),
    ('delete', 'delete requires exactly 1 argument: <unit-id>'),
    ('retry a b', 'retry requires exactly 1 argument: <unit-id>'),
    ('use', 'use requires exactly 1 argument: <owner-id>'),
    ('list extra', 'list takes no arguments'),
    ('frobnicate', 'Unknown command: frobnicate'),
])
def test_parse_errors(line, message):
    with pytest.raises(ParseError, match=message):
        parse_command(line)


def test_parse_unbalanced_quotes():
    with pytest.raises(ParseError, match='Invalid syntax'):
        parse_command('upload "unterminated.txt')
