"""File utility functions."""


class FileHelper:
    """Helper class for presenting file information."""

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        """Format file size in human readable format.

        Bytes have no decimal places, larger units two.

        Args:
            size_bytes: Size in bytes

        Returns:
            Formatted size string
        """
        size_names = ["B", "KB", "MB", "GB", "TB", "PB"]
        size = float(size_bytes)
        i = 0

        while size >= 1024 and i < len(size_names) - 1:
            size /= 1024.0
            i += 1

        if i == 0:
            return f"{int(size)} B"
        return f"{size:.2f} {size_names[i]}"
