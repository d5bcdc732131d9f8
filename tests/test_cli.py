#!/usr/bin/env python3
"""
Tests for the bfvm command line tool.
"""

import io
import os
import sys
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from bfvm.cli import main


def write(tmp_path, code, name="prog.bf"):
    path = tmp_path / name
    path.write_text(code, encoding="utf-8")
    return str(path)


def test_runs_file(tmp_path, capsysbinary):
    assert main([write(tmp_path, "+++.")]) == 0
    assert capsysbinary.readouterr().out == b"\x03"


def test_reads_stdin(monkeypatch, capsysbinary):
    monkeypatch.setattr(sys, "stdin", io.StringIO("++\n+.\n"))
    assert main([]) == 0
    assert capsysbinary.readouterr().out == b"\x03"


def test_dump_goes_to_stderr(tmp_path, capsysbinary):
    assert main([write(tmp_path, "+++."), "--dump"]) == 0
    captured = capsysbinary.readouterr()
    assert captured.out == b"\x03"
    assert b"0000: add a, 3" in captured.err
    assert b"0001: out a" in captured.err


def test_no_optimize_dump(tmp_path, capsysbinary):
    assert main([write(tmp_path, "+."), "--no-optimize", "--dump"]) == 0
    err = capsysbinary.readouterr().err
    assert b"0000: ld" in err
    assert b"0002: st" in err


def test_stats(tmp_path, capsysbinary):
    assert main([write(tmp_path, "++>+<."), "--stats"]) == 0
    err = capsysbinary.readouterr().err
    assert b"Compilation took" in err
    assert b"Execution took" in err
    assert b"2 1 0" in err


def test_unsupported_input_reports_and_fails(tmp_path, capsysbinary):
    assert main([write(tmp_path, "+.\n,")]) == 1
    captured = capsysbinary.readouterr()
    assert captured.out == b""
    assert b"UnsupportedOperation" in captured.err
    assert b"line 2, column 1" in captured.err


def test_out_of_range(tmp_path, capsysbinary):
    assert main([write(tmp_path, "+.<.")]) == 1
    captured = capsysbinary.readouterr()
    assert captured.out == b"\x01"
    assert b"OutOfRange" in captured.err


def test_missing_file(tmp_path, capsysbinary):
    assert main([str(tmp_path / "nope.bf")]) == 1
    assert b"Couldn't find file" in capsysbinary.readouterr().err


def test_no_wrap(tmp_path, capsysbinary):
    assert main([write(tmp_path, "-."), "--no-wrap"]) == 0
    assert capsysbinary.readouterr().out == b"\xff"


def test_step_limit(tmp_path, capsysbinary):
    assert main([write(tmp_path, "+[]"), "--max-steps", "50"]) == 1
    assert b"StepLimitExceeded" in capsysbinary.readouterr().err
