"""Ship systemd journal entries to Graylog as GELF over UDP."""
