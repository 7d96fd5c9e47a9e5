#!/usr/bin/env python3
"""
Test fonctionnel de publication - Affiche le document prêt à publier.

Utilise le ContentPipeline complet:
- Classification (sortie étiquetée ou markdown propre)
- Extraction titre + corps
- Suppression du boilerplate de fin
- Placement des images, mise en forme
- Rendu HTML + injection de liens

Usage:
    python scripts/prepare_document.py FICHIER [--topic SUJET] [--no-links] [--save]

Exemple:
    python scripts/prepare_document.py tests/samples/article.txt --topic "pain maison"
    python scripts/prepare_document.py tests/samples/article.txt --no-links --save
"""
import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seo_publisher.errors import RenderFailure
from seo_publisher.pipeline import LinkOptions, content_pipeline


async def prepare_file(path: Path, topic: str = "", links: bool = True, save: bool = False) -> None:
    """Prépare un fichier de texte généré via le pipeline complet."""
    print(f"\n{'=' * 60}")
    print(f"📝 Préparation: {path}")
    print(f"{'=' * 60}\n")

    options = LinkOptions() if links else LinkOptions(
        include_internal=False, include_external=False, include_promotional=False
    )

    try:
        text = path.read_text(encoding="utf-8")
        result = await content_pipeline.process(text, topic=topic, link_options=options)

        print("✅ Préparation réussie!\n")
        print(f"📊 Statistiques:")
        print(f"   - Titre: {result.title or 'N/A'}")
        print(f"   - Extrait: {result.excerpt}")
        print(f"   - Longueur du HTML: {len(result.html)} caractères")
        print(f"   - Format d'origine: {'étiqueté' if result.classification.is_legacy else 'markdown'}")
        print(f"   - Liens: {result.links}")
        print(f"   - Pipeline steps: {', '.join(result.steps_applied)}")

        for issue in result.issues:
            print(f"   ⚠️  {issue.code}: {issue}")

        if save:
            output = path.with_suffix(".html")
            output.write_text(result.html, encoding="utf-8")
            print(f"\n💾 Sauvegardé: {output}")
        else:
            print(f"\n{'─' * 60}")
            print("📄 CONTENU HTML:")
            print(f"{'─' * 60}\n")
            print(result.html)

    except FileNotFoundError:
        print(f"❌ Fichier introuvable: {path}")
    except RenderFailure as e:
        print(f"❌ Échec du rendu: {e}")


def main():
    args = sys.argv[1:]
    save = "--save" in args
    links = "--no-links" not in args
    args = [a for a in args if a not in ("--save", "--no-links")]

    topic = ""
    if "--topic" in args:
        index = args.index("--topic")
        topic = args[index + 1] if index + 1 < len(args) else ""
        del args[index:index + 2]

    if not args:
        print(__doc__)
        sys.exit(1)

    asyncio.run(prepare_file(Path(args[0]), topic=topic, links=links, save=save))


if __name__ == "__main__":
    main()
