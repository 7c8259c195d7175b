from AVLIndex.__main__ import main


def test_cli_render_and_inorder(capsys):
    assert main(["10", "20", "30"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[:3] == ["    30", "Root -> 20", "    10"]
    assert out[3] == "inorder: 10 20 30"
    assert out[4] == "count: 3 height: 2"


def test_cli_delete_and_queries(capsys):
    assert main([
        "5", "3", "8", "1", "4", "7", "9",
        "--delete", "7",
        "--order", "pre",
        "--count-below", "5",
        "--count-above", "5",
        "--kth", "4",
    ]) == 0

    out = capsys.readouterr().out.splitlines()
    assert "preorder: 5 3 1 4 8 9" in out
    assert "count: 6 height: 3" in out
    assert "smaller than 5: 3" in out
    assert "greater than 5: 2" in out
    assert "k=4: 5" in out


def test_cli_invalid_k(capsys):
    assert main(["1", "2", "--kth", "3"]) == 2

    captured = capsys.readouterr()
    assert "impossible value for k" in captured.err


def test_cli_empty(capsys):
    assert main([]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out == ["", "inorder: ", "count: 0 height: 0"]
