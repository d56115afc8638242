from prep_call.utils.logging import setup_logging

def test_logging_setup(mock_env_vars, tmp_path, restore_logger):
    """Test that logging is set up correctly."""
    # Setup logging
    logger = setup_logging()

    # Test that we can log messages
    test_message = "Test log message"
    logger.info(test_message)

    # Check that log file was created
    log_file = tmp_path / "logs/prep_call.log"
    assert log_file.exists()

    # Read the log file and check the message
    with open(log_file, "r") as f:
        log_content = f.read()
        assert test_message in log_content

def test_logging_without_file(mock_env_vars, monkeypatch, tmp_path, restore_logger):
    """LOG_TO_FILE=false keeps logs on stderr only."""
    from prep_call.config.settings import get_settings

    monkeypatch.setenv("LOG_TO_FILE", "false")
    get_settings.cache_clear()

    logger = setup_logging()
    logger.info("stderr only")

    assert not (tmp_path / "logs").exists()
