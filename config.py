"""
Configuration file for the worksheet word cloud.
Modify this file to customize the application's behavior.
"""

# Gemini configuration
GEMINI_CONFIG = {
    "model_name": "gemini-2.5-flash",  # Model used for both remote calls
    "api_key_env_vars": ["GEMINI_API_KEY", "API_KEY"],  # Checked in order
    "api_key_file": "gemini.api",  # Fallback key file
    "retry_attempts": 3,  # Attempts per request for transient errors
    "base_retry_delay": 1.0,  # Seconds, doubled on every retry
    "default_mime_type": "image/jpeg",  # Used when the file type can't be guessed
}

# Prompts sent to Gemini
PROMPTS = {
    "extract_text": (
        "Extract all text from this image. Return only the text content, "
        "without any formatting or explanations."
    ),
    "extract_keywords": (
        "Analyze the following text from a worksheet. Identify the top {max_keywords} "
        "most important keywords or concepts. Return the result as a JSON array where "
        "each object has a 'text' (the keyword) and a 'value' (a numerical score from "
        "10 to 100 representing its importance). Do not include any explanation, just "
        'the JSON array. Text to analyze: "{text}"'
    ),
}

# Keyword extraction configuration
KEYWORD_CONFIG = {
    "max_keywords": 30,  # Upper bound requested from and kept from the model
    "min_score": 10,
    "max_score": 100,
}

# Layout configuration
LAYOUT_CONFIG = {
    "padding": 5,  # Pixels kept free around every placed label
    "font_family": "sans-serif",
    "min_font_size": 12,
    "max_font_size": 80,  # Cap for the viewport-derived maximum
    "viewport_font_divisor": 8,  # max font ~ width / 8
    "height_ratio": 0.75,  # canvas height ~ 0.75 * width
    "max_height": 500,
    "spiral": "archimedean",  # "archimedean" or "rectangular"
    "max_steps": 20000,  # Spiral steps tried per label before dropping it
}

# Font files tried in order for each family
FONT_CANDIDATES = {
    "sans-serif": ["DejaVuSans.ttf", "arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf"],
    "serif": ["DejaVuSerif.ttf", "times.ttf", "georgia.ttf"],
    "monospace": ["DejaVuSansMono.ttf", "cour.ttf", "consola.ttf"],
}

# Render configuration
RENDER_CONFIG = {
    "background": "white",
    "palette_size": 10,  # Categorical colors cycled by placement rank
}

# GUI configuration
GUI_CONFIG = {
    "title": "Worksheet Word Cloud",
    "geometry": "1000x800",
    "preview_size": (420, 320),
    "image_filetypes": [
        ("Image files", "*.jpg *.jpeg *.png *.bmp *.gif *.webp"),
        ("JPEG files", "*.jpg *.jpeg"),
        ("PNG files", "*.png"),
        ("All files", "*.*"),
    ],
}

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "datefmt": "%Y-%m-%d %H:%M:%S",
}
