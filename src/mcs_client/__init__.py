"""Client for the MCS (Mail.ru Cloud Solutions) billing API."""
