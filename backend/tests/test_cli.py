from backend.reviewgen import review_cli


def test_show_prompt_prints_both_parts(capsys):
    code = review_cli.main(
        ["--good", "唐揚げが絶品", "--bad-none", "--language", "en", "--category", "izakaya", "--show-prompt"]
    )
    assert code == 0
    system, user = capsys.readouterr().out.split("---\n", 1)
    assert "izakaya" in system
    assert "唐揚げが絶品" not in system
    assert "- Liked: 唐揚げが絶品" in user


def test_empty_selection_exits_nonzero(capsys):
    code = review_cli.main(["--good-none", "--neutral-none", "--bad-none", "--show-prompt"])
    assert code == 1
    assert "Select at least one tag" in capsys.readouterr().err


def test_generation_needs_credentials(capsys):
    code = review_cli.main(["--good", "スープ"])
    assert code == 1
    assert "not configured" in capsys.readouterr().err


def test_parser_persona_choices():
    args = review_cli.build_parser().parse_args(
        ["--good", "a", "--good", "b", "--age", "twenties", "--visit-frequency", "regular"]
    )
    assert args.good == ["a", "b"]
    assert args.age == "twenties"
    assert args.visit_frequency == "regular"
