"""Heuristic lookup tables for section detection and page stabilization.

Order matters in every table: earlier entries win.
"""

from __future__ import annotations

from sectioncapture.models.section import SectionType

# Candidate selectors per section type, most specific first
SECTION_SELECTORS: dict[SectionType, list[str]] = {
    SectionType.HEADER: [
        "header",
        '[role="banner"]',
        "nav:first-of-type",
        ".header",
        "#header",
        '[class*="header"]',
        '[class*="navbar"]',
        '[class*="nav-bar"]',
    ],
    SectionType.HERO: [
        '[class*="hero"]',
        '[id*="hero"]',
        "section:first-of-type",
        "main > section:first-child",
        '[class*="banner"]:not(header)',
        '[class*="jumbotron"]',
        '[class*="landing"]',
        '[class*="masthead"]',
    ],
    SectionType.FEATURES: [
        '[class*="feature"]',
        '[id*="feature"]',
        '[class*="services"]',
        '[id*="services"]',
        '[class*="benefits"]',
        '[class*="capabilities"]',
        '[class*="what-we-do"]',
    ],
    SectionType.TESTIMONIALS: [
        '[class*="testimonial"]',
        '[id*="testimonial"]',
        '[class*="review"]',
        '[id*="review"]',
        '[class*="quote"]',
        '[class*="customer"]',
        '[class*="social-proof"]',
    ],
    SectionType.PRICING: [
        '[class*="pricing"]',
        '[id*="pricing"]',
        '[class*="plans"]',
        '[id*="plans"]',
        '[class*="subscription"]',
        '[class*="packages"]',
    ],
    SectionType.CTA: [
        '[class*="cta"]',
        '[id*="cta"]',
        '[class*="call-to-action"]',
        '[class*="signup"]',
        '[class*="get-started"]',
        '[class*="action"]',
        '[data-framer-name*="CTA"]',
        '[data-framer-name*="Contact"]',
        '[data-framer-name*="Request"]',
        'section:has(h2:has-text("Request"))',
        'section:has(h2:has-text("Contact"))',
        'section:has(h2:has-text("FAQ"))',
    ],
    SectionType.FOOTER: [
        "footer",
        '[role="contentinfo"]',
        ".footer",
        "#footer",
        '[class*="footer"]',
        '[class*="site-footer"]',
        '[data-framer-name*="Footer"]',
        '[data-framer-name*="CTA Footer"]',
        'section:has(h2:has-text("Ready to"))',
        'section:has(h2:has-text("Join"))',
    ],
}

# Names of design-tool regions that count as meaningful sections
SECTION_KEYWORDS: tuple[str, ...] = (
    "hero", "header", "nav", "navigation",
    "feature", "service", "benefit", "about",
    "testimonial", "review", "quote", "client",
    "pricing", "plan", "package",
    "cta", "contact", "demo", "request", "book", "call",
    "faq", "question",
    "footer", "bottom",
    "team", "partner", "logo", "brand",
    "gallery", "portfolio", "work", "case",
    "blog", "journal", "news", "article",
)

# Region name substrings -> type; the first matching rule wins.
# Positional rules (first region, last region) live in the detector.
NAME_TYPE_RULES: list[tuple[tuple[str, ...], SectionType]] = [
    (("footer",), SectionType.FOOTER),
    (("nav", "header"), SectionType.HEADER),
    (("hero", "landing", "banner"), SectionType.HERO),
    (("testimonial", "review", "quote", "client", "customer"), SectionType.TESTIMONIALS),
    (("pricing", "plan", "package", "tier", "subscription"), SectionType.PRICING),
    (("cta", "contact", "demo", "request", "book", "session", "schedule", "call", "start"), SectionType.CTA),
    (("faq", "question", "answer"), SectionType.CTA),
    (("feature", "service", "benefit", "how", "work", "about", "journal", "blog", "news"), SectionType.FEATURES),
]

# Types assigned to viewport-split bands between the hero and the cta
BAND_CYCLE: tuple[SectionType, ...] = (SectionType.FEATURES, SectionType.TESTIMONIALS, SectionType.PRICING)

# Cookie-consent accept buttons, tried in order
CONSENT_SELECTORS: tuple[str, ...] = (
    'button[id*="accept"]',
    'button[class*="accept"]',
    'button[id*="consent"]',
    'button[class*="consent"]',
    'button[id*="cookie"]',
    'button[class*="cookie"]',
    'button:has-text("Accept")',
    'button:has-text("Accept All")',
    'button:has-text("Accept Cookies")',
    'button:has-text("I Accept")',
    'button:has-text("OK")',
    'button:has-text("Agree")',
    '[id*="onetrust"] button[id*="accept"]',
    '[class*="gdpr"] button[class*="accept"]',
    '[class*="cookiebot"] button[id*="accept"]',
)

# Fixed / sticky top navigation bars
FIXED_NAV_SELECTORS: tuple[str, ...] = (
    'nav[data-framer-name*="Navigation"]',
    'nav[data-framer-name*="Nav"]',
    "nav",
    '[role="navigation"]',
    "header nav",
)

# Elements the style extractor considers as a section's root
SECTION_ROOT_SELECTOR = (
    'section, article, main > div, [class*="section"], [data-framer-name], header, footer, nav'
)

# Markers of motion libraries that reveal content with entrance animations
MOTION_MARKER_SELECTOR = '[data-framer-appear-id], [data-framer-component-type], [style*="opacity: 0"]'
