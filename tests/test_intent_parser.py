from atelier_engine.chat.intent_parser import parse_intent


def test_parse_intent_plain_text_is_a_message():
    intent = parse_intent("  a velvet evening coat  ")
    assert intent.action == "message"
    assert intent.prompt == "a velvet evening coat"


def test_parse_intent_blank_is_noop():
    assert parse_intent("   ").action == "noop"


def test_parse_intent_upload_quoted_path():
    intent = parse_intent('/upload "/tmp/mood board.png"')
    assert intent.action == "upload"
    assert intent.command_args["path"] == "/tmp/mood board.png"


def test_parse_intent_upload_unquoted_path_with_spaces():
    intent = parse_intent("/upload /tmp/mood board.png")
    assert intent.command_args["path"] == "/tmp/mood board.png"


def test_parse_intent_share_id():
    intent = parse_intent("/share asset-123")
    assert intent.action == "toggle_share"
    assert intent.command_args["id"] == "asset-123"


def test_parse_intent_export_optional_path():
    assert parse_intent("/export").command_args["path"] is None
    assert parse_intent("/export out/look").command_args["path"] == "out/look"


def test_parse_intent_edit_with_mask():
    intent = parse_intent("/edit c1 img1 --mask /tmp/mask.png make the sleeves lace")
    assert intent.action == "edit"
    assert intent.command_args == {
        "concept_id": "c1",
        "image_id": "img1",
        "mask": "/tmp/mask.png",
        "instruction": "make the sleeves lace",
    }


def test_parse_intent_edit_without_mask():
    intent = parse_intent("/edit c1 img1 shorten the hem")
    assert intent.command_args["mask"] is None
    assert intent.command_args["instruction"] == "shorten the hem"


def test_parse_intent_produce_defaults_to_photo():
    intent = parse_intent("/produce c1 paris")
    assert intent.action == "produce"
    assert intent.command_args == {"concept_id": "c1", "scenario": "paris", "mode": "photo"}


def test_parse_intent_produce_custom_scenario_video():
    intent = parse_intent("/produce c1 misty harbor at dawn VIDEO")
    assert intent.command_args["scenario"] == "misty harbor at dawn"
    assert intent.command_args["mode"] == "video"


def test_parse_intent_unknown_command():
    intent = parse_intent("/blend a.png b.png")
    assert intent.action == "unknown"
    assert intent.command_args["command"] == "blend"


def test_parse_intent_bare_commands():
    assert parse_intent("/cancel").action == "cancel"
    assert parse_intent("/STATUS").action == "status"
    assert parse_intent("/help").action == "help"
