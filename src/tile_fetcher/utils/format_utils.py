class FormatUtils:
    """Utility class for human-readable output"""
    
    SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB"]
    
    @staticmethod
    def format_bytes(size: int, decimals: int = 2) -> str:
        """Format a byte count in base 1024, e.g. "1.50 KB" """
        if size == 0:
            return "0 Bytes"
        if size == 1:
            return "1 Byte"
        
        index = 0
        while size >= 1024 ** (index + 1) and index < len(FormatUtils.SIZE_UNITS) - 1:
            index += 1
        value = size / 1024 ** index
        return f"{value:.{max(decimals, 0)}f} {FormatUtils.SIZE_UNITS[index]}"
