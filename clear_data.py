"""
清空数据库中除用户表外的所有数据
"""
import asyncio
import sys

from sqlalchemy import text

from mango_articles.core.config import settings
from mango_articles.db.database import Database

# 按照依赖关系的顺序删除数据（先删除依赖表，后删除被依赖表）
TABLES = [
    ("likes", "点赞"),
    ("comments", "评论"),
    ("article_blocks", "文章内容块"),
    ("articles", "文章"),
]


async def clear_all_data(database: Database) -> int:
    """
    清空除用户表外的所有表数据

    Returns:
        int: 删除的记录总数
    """
    total_deleted = 0
    async with database.session_factory() as session:
        print("开始清空数据...")

        for table_name, table_desc in TABLES:
            count = (await session.execute(text(f"SELECT COUNT(*) FROM {table_name}"))).scalar()
            if count:
                await session.execute(text(f"DELETE FROM {table_name}"))
                print(f"✅ 清空 {table_desc} 表: 删除了 {count} 条记录")
                total_deleted += count
            else:
                print(f"⚪ {table_desc} 表: 已经是空的")

        await session.commit()

        user_count = (await session.execute(text("SELECT COUNT(*) FROM users"))).scalar()
        print(f"\n总计删除了 {total_deleted} 条记录")
        print(f"✅ 用户表保留: {user_count} 个用户")

    return total_deleted


async def main():
    database = Database(settings.DATABASE_URL)
    try:
        await clear_all_data(database)
        print("\n🎉 数据清空完成！")
    finally:
        await database.dispose()


if __name__ == "__main__":
    print("=" * 60)
    print("清空数据库（保留用户表）")
    print("=" * 60)

    print("\n⚠️  警告: 此操作将删除以下表的所有数据:")
    for table_name, table_desc in TABLES:
        print(f"  - {table_name} ({table_desc})")
    print("\n✅ 用户表 (users) 的数据将被保留\n")

    confirm = input("确认执行此操作? (输入 'yes' 确认): ")

    if confirm.lower() == 'yes':
        asyncio.run(main())
    else:
        print("\n❌ 操作已取消")
        sys.exit(1)
