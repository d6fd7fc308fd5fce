import cv2
import pytest
from pydantic import ValidationError

from prokon import cli
from prokon.config import ImageConfig, VisualizerConfig
from prokon.core.imaging import encode_png
from prokon.replay import GestureScript, load_gesture_script, replay
from prokon.session import VisualizerSession

SCRIPT = """
container: [800, 600]
brush_size: 20
events:
  - {type: press, points: [[100, 100]]}
  - {type: move, points: [[300, 100]]}
  - {type: release}
  - {type: mode, value: move}
  - {type: press, points: [[0, 0]]}
  - {type: move, points: [[25, 40]]}
  - {type: release}
"""


@pytest.fixture
def script_path(tmp_path):
    path = tmp_path / "gestures.yaml"
    path.write_text(SCRIPT, encoding="utf-8")
    return path


@pytest.fixture
def image_path(tmp_path, photo):
    path = tmp_path / "room.png"
    path.write_bytes(encode_png(photo))
    return path


def test_replay_paints_then_pans(script_path, photo):
    session = VisualizerSession(VisualizerConfig(image=ImageConfig(max_side=0)))
    session.load_image(photo)
    replay(session, load_gesture_script(script_path))

    alpha = session.painter.alpha()
    assert alpha[50, 50] == 255
    assert alpha[50, 150] == 255
    assert alpha[200, 50] == 0
    assert session.viewport.offset == pytest.approx((25.0, 40.0))


def test_replay_origin_shift(photo):
    session = VisualizerSession(VisualizerConfig(image=ImageConfig(max_side=0)))
    session.load_image(photo)
    script = GestureScript.model_validate(
        {
            "container": [800, 600],
            "origin": [40, 70],
            "events": [{"type": "press", "points": [[100, 100]]}],
        }
    )
    replay(session, script)
    assert session.painter.alpha()[50, 50] == 255


@pytest.mark.parametrize(
    "payload",
    [
        {"events": []},
        {"events": [{"type": "press"}]},
        {"events": [{"type": "tool"}]},
        {"events": [{"type": "jump"}]},
        {"container": [0, 600], "events": [{"type": "release"}]},
    ],
)
def test_invalid_scripts_rejected(payload):
    with pytest.raises(ValidationError):
        GestureScript.model_validate(payload)


def test_cli_replay_writes_mask(script_path, image_path, tmp_path):
    output = tmp_path / "out" / "mask.png"
    preview = tmp_path / "out" / "preview.png"
    config = tmp_path / "visualizer.yaml"
    config.write_text("image:\n  max_side: 0\n", encoding="utf-8")

    code = cli.main(
        [
            "replay",
            str(script_path),
            str(image_path),
            "--output",
            str(output),
            "--preview",
            str(preview),
            "--config",
            str(config),
        ]
    )
    assert code == 0
    mask = cv2.imread(str(output), cv2.IMREAD_UNCHANGED)
    assert mask.shape == (300, 400, 4)
    assert mask[50, 100, 3] == 255
    assert preview.exists()


def test_cli_replay_missing_files(tmp_path, script_path):
    assert cli.main(["replay", str(script_path), str(tmp_path / "missing.png")]) == 2


def test_cli_replay_bad_image(tmp_path, script_path):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"garbage")
    assert cli.main(["replay", str(script_path), str(bad), "--output", str(tmp_path / "m.png")]) == 1


def test_cli_validate(tmp_path, capsys):
    config = tmp_path / "visualizer.yaml"
    config.write_text("brush:\n  default_size: 120\n", encoding="utf-8")
    assert cli.main(["validate", str(config)]) == 0
    assert "default 120px" in capsys.readouterr().out


def test_cli_validate_failures(tmp_path):
    assert cli.main(["validate", str(tmp_path / "nope.yaml")]) == 2
    broken = tmp_path / "broken.yaml"
    broken.write_text("overlay:\n  opacity: 3\n", encoding="utf-8")
    assert cli.main(["validate", str(broken)]) == 1
