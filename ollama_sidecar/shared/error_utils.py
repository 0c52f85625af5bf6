class ErrorUtils:
    @staticmethod
    def preview(raw: bytes, limit: int = 512) -> str:
        """
        Render raw response bytes for a log line.

        Args:
            raw: The bytes to render (typically one extracted frame).
            limit: Maximum number of characters kept before truncation.

        Returns:
            The decoded text, with undecodable bytes replaced and long input
            truncated with a marker showing the original size.
        """
        text = raw.decode("utf-8", errors="replace")
        if len(text) <= limit:
            return text
        return f"{text[:limit]}... [{len(raw)} bytes]"
