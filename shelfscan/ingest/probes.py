"""DOM probe scripts evaluated against a live render surface.

Each probe is a JavaScript function expression taking at most one argument.
They read the page and return plain JSON-able values; only the scroll
metrics probe is consulted while the page is being mutated.
"""

# arg: {infinite: [selectors], button: [selectors], pagination: [selectors]}
# returns: {infinite: bool, button: bool, pagination: bool}
PATTERN_MARKERS = """
(groups) => {
    const present = (selectors) => selectors.some((sel) => {
        try {
            return document.querySelector(sel) !== null;
        } catch (e) {
            return false;
        }
    });
    return {
        infinite: present(groups.infinite || []),
        button: present(groups.button || []),
        pagination: present(groups.pagination || []),
    };
}
"""

# returns: {y, viewport, height}
SCROLL_METRICS = """
() => ({
    y: Math.ceil(window.scrollY || window.pageYOffset || 0),
    viewport: window.innerHeight,
    height: Math.max(
        document.body ? document.body.scrollHeight : 0,
        document.documentElement ? document.documentElement.scrollHeight : 0
    ),
})
"""

# returns: number of lazily-loaded images that have not finished (load or error)
PENDING_LAZY_IMAGES = """
() => Array.from(
    document.querySelectorAll('img[data-src], img[loading="lazy"]')
).filter((img) => !img.complete).length
"""

# arg: {card, title, price, image, link, imageAttributes: [names]}
# returns: [{title, price, href, image: {src, <attr>: value, ...}}]
EXTRACT_CARDS = """
(profile) => {
    const text = (root, sel) => {
        if (!sel) return '';
        const el = root.querySelector(sel);
        if (!el) return '';
        return (el.getAttribute('title') || el.textContent || '').trim();
    };
    return Array.from(document.querySelectorAll(profile.card)).map((card) => {
        const img = profile.image ? card.querySelector(profile.image) : null;
        const image = {};
        if (img) {
            image.src = img.getAttribute('src') || '';
            for (const name of profile.imageAttributes) {
                const value = img.getAttribute(name);
                if (value) image[name] = value;
            }
        }
        const link = profile.link ? card.querySelector(profile.link) : null;
        return {
            title: text(card, profile.title),
            price: text(card, profile.price),
            href: link ? link.href : null,
            image: image,
        };
    });
}
"""
