import logging

from site_deploy.log import SUCCESS, log_success, transcript


def test_transcript_captures_records_and_closes(tmp_path):
    path = tmp_path / "deploy.log"
    logger = logging.getLogger("site_deploy")
    logger.setLevel(logging.INFO)

    with transcript(str(path)) as handler:
        logging.getLogger("site_deploy.provision").info("creating bucket")
        log_success("bucket ready")

    assert handler not in logger.handlers
    assert handler.stream is None
    text = path.read_text(encoding="utf-8")
    assert "INFO - creating bucket" in text
    assert "SUCCESS - bucket ready" in text


def test_transcript_closes_on_error(tmp_path):
    path = tmp_path / "deploy.log"
    logger = logging.getLogger("site_deploy")
    handler = None
    try:
        with transcript(str(path)) as handler:
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert handler not in logger.handlers
    assert handler.stream is None


def test_transcript_without_path_is_a_no_op():
    with transcript(None) as handler:
        assert handler is None


def test_success_level_name():
    assert logging.getLevelName(SUCCESS) == "SUCCESS"
